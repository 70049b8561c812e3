"""
Production Server Configuration

Run the API with a Uvicorn worker under Gunicorn. The engine state is held
by one in-process service, so there is exactly one worker.
"""

import os

# Server socket
bind = os.getenv("BIND", f"0.0.0.0:{os.getenv('PORT', '8000')}")
backlog = 2048

# Worker processes
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
timeout = 300  # large report uploads
keepalive = 5
graceful_timeout = 30

# Process naming
proc_name = "salesrecon-api"

# Server mechanics
daemon = False
pidfile = "/tmp/salesrecon.pid"

# Logging
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = "-"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'
