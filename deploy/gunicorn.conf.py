"""
deploy/gunicorn.conf.py
Gunicorn settings for the coursecore API

    gunicorn -c deploy/gunicorn.conf.py coursecore.main:app

Every worker builds its own engine in the app lifespan. With the default
SQLite backend keep WEB_CONCURRENCY at 1; concurrent writers would contend
for the file lock and fail fast with STORE_CONTENTION.
"""
import os
import multiprocessing

# Server socket
bind = os.environ.get("BIND", "0.0.0.0:8000")

# Worker processes
_default_workers = multiprocessing.cpu_count() * 2 + 1
if "sqlite" in os.environ.get("DATABASE_URL", "sqlite"):
    _default_workers = 1
workers = int(os.environ.get("WEB_CONCURRENCY", _default_workers))
worker_class = "uvicorn.workers.UvicornWorker"

# The executor's worst case (5 attempts, 10s cap) must fit in one request
timeout = 60
graceful_timeout = 30
keepalive = 5

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()

proc_name = "coursecore"
