"""
loreweaver API server entry point.

Run with:
    python -m loreweaver.api.main --world world.yaml

Or with uvicorn directly (settings from LOREWEAVER_* environment):
    uvicorn loreweaver.api.main:get_app --factory --port 8000
"""

import argparse

import uvicorn

from ..config import Settings, configure_logging
from .server import create_app


def get_app():
    """Factory function for creating the FastAPI app."""
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    return create_app(settings)


def main(argv: list[str] | None = None):
    """Main entry point for the loreweaver API server."""
    parser = argparse.ArgumentParser(description="loreweaver API server")
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)",
    )
    parser.add_argument(
        "--world",
        help="YAML world file to seed the in-memory stores",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: LOREWEAVER_LOG_LEVEL or INFO)",
    )
    args = parser.parse_args(argv)

    settings = Settings.from_env(world_file=args.world, log_level=args.log_level)
    configure_logging(settings.log_level)

    print("Starting loreweaver API server")
    print(f"  Host: {args.host}")
    print(f"  Port: {args.port}")
    print(f"  Backend: {settings.api_url} ({settings.default_model})")
    print(f"  World: {settings.world_file or 'empty'}")
    print()

    uvicorn.run(
        create_app(settings),
        host=args.host,
        port=args.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
