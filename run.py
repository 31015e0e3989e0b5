"""
Run script for starting the Call Bridge server.

This script configures and starts the FastAPI server with WebSocket settings
suited to streaming call audio between Twilio and OpenAI.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import sys

import uvicorn

from call_bridge.config.logging_config import configure_logging
from call_bridge.config.settings import load_settings


def parse_args(argv=None):
    """Parse command line arguments, defaulting to the environment settings."""
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Start the Call Bridge server")
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help="Port to run the server on (default: 3000 or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=settings.host,
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for starting the server."""
    args = parse_args(argv)
    logger = configure_logging(args.log_level)

    if not load_settings().api_key_configured:
        logger.error("OPENAI_API_KEY environment variable not set")
        print("Error: OPENAI_API_KEY environment variable is required")
        sys.exit(1)

    logger.info(f"Starting server on http://{args.host}:{args.port}")
    logger.info(f"Log level: {args.log_level}")
    logger.info("OpenAI API key configured: True")

    uvicorn.run(
        "call_bridge.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        http="h11",
        # Disable access logs, we have our own logging
        access_log=False,
        ws_ping_interval=5,
        ws_ping_timeout=20,
    )


if __name__ == "__main__":
    main()
