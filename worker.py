# worker.py
"""
Entry point Celery worker / beat.

    celery -A worker.celery worker --loglevel=info
    celery -A worker.celery beat --loglevel=info
"""

import logging

from app import create_app
from app.extensions import celery

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
log = logging.getLogger("worker")

flask_app = create_app()

# Daftarkan task (import untuk efek samping @celery.task)
import app.tasks.sync_tasks  # noqa: E402,F401

log.info("Celery worker siap, broker=%s", celery.conf.broker_url)

__all__ = ["celery", "flask_app"]
