"""Gunicorn configuration for the edge gateway.

Usage:
    gunicorn -c gunicorn_conf.py
"""

import os

wsgi_app = "gateway.main:create_app()"

# ── Server Socket ─────────────────────────────
# The single publicly exposed port
bind = f"0.0.0.0:{os.getenv('SERVICE_PORT', '5921')}"

# ── Worker Processes ──────────────────────────
# Each worker owns one upstream pool of POOL_MAX_CONNECTIONS
workers = int(os.getenv("GUNICORN_WORKERS", "2"))
worker_class = "gateway.worker.GatewayWorker"
worker_tmp_dir = "/dev/shm"

# ── Timeouts ──────────────────────────────────
timeout = int(os.getenv("GUNICORN_TIMEOUT", "120"))
graceful_timeout = int(os.getenv("GUNICORN_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.getenv("GUNICORN_KEEPALIVE", "5"))

# ── Logging ───────────────────────────────────
# One request_forwarded event per call replaces the access log
accesslog = None
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# ── Process Naming ────────────────────────────
proc_name = os.getenv("SERVICE_NAME", "edge_gateway")

# ── Security ──────────────────────────────────
limit_request_line = 8190
limit_request_fields = 100
limit_request_field_size = 8190

# ── Server Mechanics ─────────────────────────
# Route table errors abort the master before any worker forks
preload_app = True
max_requests = int(os.getenv("GUNICORN_MAX_REQUESTS", "1000"))
max_requests_jitter = int(os.getenv("GUNICORN_MAX_REQUESTS_JITTER", "50"))
