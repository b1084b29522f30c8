#!/usr/bin/env python3
"""
Milestone Schedule - Entry point for running the web server.

Usage:
    python main.py                 # Serve on :8000
    python main.py --port 9000
"""

import argparse
import logging

import uvicorn

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Milestone schedule editor API")
    parser.add_argument("--host", default="127.0.0.1", help="Web server host")
    parser.add_argument("--port", type=int, default=8000, help="Web server port")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    args = parser.parse_args()

    # Database opens in the app lifespan, on uvicorn's event loop
    logger.info(f"Running web server on {args.host}:{args.port}")
    uvicorn.run("milestones.main:app", host=args.host, port=args.port, reload=args.reload, log_level="info")


if __name__ == "__main__":
    main()
