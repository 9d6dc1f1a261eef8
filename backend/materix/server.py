"""Run the API under uvicorn with a bounded graceful shutdown."""
import argparse

import uvicorn

from materix.config import settings


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Materix API server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=settings.PORT)
    parser.add_argument("--reload", action="store_true", help="restart on code changes (development only)")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    uvicorn.run(
        "materix.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,  # keep the handlers installed by configure_logging
        timeout_graceful_shutdown=settings.SHUTDOWN_GRACE_SECONDS,
    )


if __name__ == "__main__":
    main()
