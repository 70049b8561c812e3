#!/usr/bin/env python
"""
Server Entry Point

Starts the reconciliation API.
Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py

    Or with Gunicorn:
    gunicorn salesrecon.main:app -c gunicorn.conf.py

The service owns the engine state in memory and persists it after each
mutation, so it always runs as a single worker process.
"""

import argparse
import os
import subprocess

import uvicorn


def run_dev_server(port: int):
    """Run development server with auto-reload."""
    uvicorn.run(
        "salesrecon.main:app",
        host="0.0.0.0",
        port=port,
        reload=True,
        reload_dirs=["salesrecon"],
        log_level="debug",
        access_log=True,
    )


def run_prod_server(port: int):
    """Run production server with Uvicorn directly."""
    uvicorn.run(
        "salesrecon.main:app",
        host="0.0.0.0",
        port=port,
        workers=1,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        access_log=True,
        proxy_headers=True,
        forwarded_allow_ips="*",
        server_header=False,
        date_header=True,
    )


def run_gunicorn():
    """Run with Gunicorn."""
    subprocess.run(["gunicorn", "salesrecon.main:app", "-c", "gunicorn.conf.py"], check=True)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Sales Reconciliation API Server")
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Run in development mode with auto-reload"
    )
    parser.add_argument(
        "--gunicorn",
        action="store_true",
        help="Run with Gunicorn (production)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", 8000)),
        help="Port to run on (default: 8000)"
    )

    args = parser.parse_args()
    os.environ["PORT"] = str(args.port)

    if args.dev:
        run_dev_server(args.port)
    elif args.gunicorn:
        run_gunicorn()
    else:
        run_prod_server(args.port)
