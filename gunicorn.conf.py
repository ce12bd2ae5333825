"""Gunicorn production configuration for the approval workflow API.

    gunicorn -c gunicorn.conf.py
"""
import multiprocessing
import os

wsgi_app = "erp_workflow.main:app"
pythonpath = "backend"

bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.environ.get("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
# sync handlers run in the worker threadpool; keep DB pool_size + max_overflow above this
threads = 1
timeout = 60
graceful_timeout = 30
keepalive = 5
max_requests = 2000
max_requests_jitter = 200
preload_app = False
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("GUNICORN_LOG_LEVEL", "info")
