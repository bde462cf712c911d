"""Run the API under uvicorn: ``python -m taskhub``."""

import argparse

import uvicorn

from .config import get_settings
from .logging_setup import setup_logging


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(prog="taskhub", description="Task Hub API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="restart on code changes")
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.log_level)
    uvicorn.run(
        "taskhub.api:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
