"""
Gunicorn configuration for the Quiz Evaluation API.

    gunicorn quizeval.main:app -c deploy/gunicorn.conf.py

Evaluation runs of the same quiz are serialized inside a worker by an
asyncio lock and across workers by the quiz row lock, which only PostgreSQL
provides. Keep WEB_CONCURRENCY=1 on SQLite.
"""
import os
import multiprocessing

# Server socket
bind = os.environ.get("BIND", "0.0.0.0:8000")
backlog = 2048

# Worker processes
workers = int(os.environ.get("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
# Above EVALUATION_TIMEOUT_SECONDS so a run times out before its worker is killed
timeout = int(os.environ.get("EVALUATION_TIMEOUT_SECONDS", 120)) + 30
keepalive = 5

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = "quizeval"

# Server mechanics
daemon = False
pidfile = "/tmp/quizeval-gunicorn.pid"

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190


def when_ready(server):
    """Called just after the server is started."""
    server.log.info(f"quizeval ready on {bind} with {workers} workers")
