"""
Gunicorn configuration for the KPI board.

Single instance, one SQLite file: keep the worker count low so writers
rarely contend for the database lock.
Env vars that override defaults:
  PORT     TCP port to bind (default: 8000)
  WORKERS  number of worker processes (default: 2)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

workers = int(os.environ.get("WORKERS", "2"))

# Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# Model-assisted uploads wait on the text-generation API.
timeout = 180

loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30

wsgi_app = "kpiboard.main:app"
