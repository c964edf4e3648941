"""Command-line interface for FlowSim."""

import argparse
import sys

import uvicorn

from flowsim.config import get_settings
from flowsim.logging_config import configure_logging


def main(args: list[str] | None = None) -> int:
    """Run the FlowSim server.

    Args:
        args: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        Exit code (0 for success).
    """
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="flowsim",
        description="FlowSim - Conveyor network simulation server",
    )
    parser.add_argument(
        "--host",
        default=settings.host,
        help=f"Host to bind to (default: {settings.host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"Port to bind to (default: {settings.port})",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )

    parsed = parser.parse_args(args)

    configure_logging()

    print(f"Starting FlowSim server at http://{parsed.host}:{parsed.port}")
    print("Press Ctrl+C to stop")

    uvicorn.run(
        "flowsim.server.app:app",
        host=parsed.host,
        port=parsed.port,
        reload=parsed.reload,
    )

    return 0


if __name__ == "__main__":
    sys.exit(main())
