"""Entry point for the aloa-knowledge server."""

from aloa_knowledge.config import get_http_host, get_http_port, get_transport
from aloa_knowledge.server import create_server


def main() -> None:
    """Run the aloa-knowledge server over stdio, or over HTTP with the JSON routes."""
    server = create_server()
    if get_transport() == "http":
        server.run(transport="http", host=get_http_host(), port=get_http_port())
    else:
        server.run(transport="stdio")


if __name__ == "__main__":
    main()
