"""Launch the recommendation API with configurable host/port.

Environment variables / CLI flags:
    API_HOST        Host address to bind (default: 0.0.0.0)
    API_PORT        Port to bind (default: 8000; PORT takes precedence)
    API_RELOAD      Enable uvicorn reload (true/false, default: false)
    API_WORKERS     Number of Uvicorn workers (default: 1)
    LOG_LEVEL       Root log level (default: INFO)
    LOG_FILE        Optional log file

Usage examples:
    python run_api.py
    python run_api.py --host 0.0.0.0 --port 8080 --workers 2
"""

import argparse
import os

import uvicorn

from shl_recommender.config import LOG_FILE, LOG_LEVEL, str_to_bool
from shl_recommender.logging_config import get_logger, setup_logging

logger = get_logger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the SHL Recommendation API server.")
    parser.add_argument(
        "--host",
        default=os.getenv("API_HOST", "0.0.0.0"),
        help="Host interface to bind (default: %(default)s)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", os.getenv("API_PORT", "8000"))),
        help="Port to bind (default: %(default)s)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=int(os.getenv("API_WORKERS", "1")),
        help="Number of uvicorn workers (default: %(default)s)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        default=str_to_bool(os.getenv("API_RELOAD"), default=False),
        help="Enable auto-reload (useful for development)",
    )
    parser.add_argument(
        "--log-level",
        default=LOG_LEVEL,
        help="Log level (default: %(default)s)",
    )
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    setup_logging(level=args.log_level, log_file=LOG_FILE)

    logger.info("=" * 70)
    logger.info("Starting SHL Recommendation API Server")
    logger.info("=" * 70)
    logger.info("Server will listen on http://%s:%s", args.host, args.port)
    logger.info("OpenAPI docs available at /docs")
    logger.info("=" * 70)

    # Import string so reload and multiple workers can re-import the app
    uvicorn.run(
        "shl_recommender.api:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=args.workers,
        log_level=args.log_level.lower(),
    )
