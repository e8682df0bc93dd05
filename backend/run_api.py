#!/usr/bin/env python
"""
Serve the WearOn B2B billing API with uvicorn.

The app exposes the generation saga under /api/v1/generation, store and
shopper balances under /api/v1/credits, the Paddle webhook receiver under
/api/v1/webhooks, the stuck-session recovery hook under /api/v1/cron and
liveness/readiness under /api/health and /api/ready.

Bind address, port, reload and log level come from the HOST, PORT, RELOAD
and LOG_LEVEL environment variables (see shared/config.py); the flags below
override them for a single run.

Usage:
    python run_api.py
    python run_api.py --reload --port 8080
"""

import argparse
import uvicorn

from shared.config import get_settings


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve the WearOn B2B billing API")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes")
    parser.add_argument("--host", type=str, help="Override HOST")
    parser.add_argument("--port", type=int, help="Override PORT")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    settings = get_settings()

    uvicorn.run(
        "api:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload or settings.reload,
        log_level=settings.log_level.lower(),
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
