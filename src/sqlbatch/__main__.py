"""Entry point for the sqlbatch MCP server."""

from sqlbatch.server import create_server


def main() -> None:
    """Run the sqlbatch MCP server."""
    server = create_server()
    server.run(transport="stdio")


if __name__ == "__main__":
    main()
