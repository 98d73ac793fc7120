# api_relawan/app/extensions.py

from __future__ import annotations

import os
from typing import Optional
import logging

from flask import Flask, current_app
from flask_cors import CORS
from celery import Celery, Task

from supabase import create_client, Client

# --- Windows + multiprocessing quirk ---
if os.name == "nt":
    os.environ.setdefault("FORKED_BY_MULTIPROCESSING", "1")

# --- Globals ---
celery: Celery = Celery(__name__)
_supabase: Optional[Client] = None
log = logging.getLogger(__name__)

# -------------------------
# Celery <-> Flask binding
# -------------------------
class FlaskContextTask(Task):
    """
    Memastikan setiap task berjalan di dalam Flask app_context.
    Gunakan atribut 'flask_app' agar tidak bentrok dengan Task.app (Celery app).
    """
    flask_app: Optional[Flask] = None

    def __call__(self, *args, **kwargs):
        app_obj = getattr(self, "flask_app", None)
        if app_obj is None:
            try:
                app_obj = current_app._get_current_object()
            except RuntimeError:
                app_obj = None

        if app_obj is not None:
            with app_obj.app_context():
                return self.run(*args, **kwargs)
        return self.run(*args, **kwargs)


def init_celery(app: Flask) -> None:
    """Konfigurasi Celery dan pasang Task base yang membawa app_context Flask."""
    broker = app.config.get("CELERY_BROKER_URL")
    backend = app.config.get("CELERY_RESULT_BACKEND")

    celery.conf.update(
        broker_url=broker,
        result_backend=backend,
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone=app.config.get("TIMEZONE", "UTC"),
        enable_utc=False,
    )

    # Sinkronisasi grup WA berkala (opsional, 0 = mati)
    interval = int(app.config.get("WA_SYNC_INTERVAL_MINUTES") or 0)
    if interval > 0:
        celery.conf.beat_schedule = {
            "wa-group-reconcile": {
                "task": "sync.reconcile_wa_group",
                "schedule": interval * 60.0,
            },
        }
        log.info("Jadwal rekonsiliasi grup WA aktif: tiap %s menit", interval)

    celery.Task = FlaskContextTask
    FlaskContextTask.flask_app = app


# -------------------------
# Supabase
# -------------------------
def init_supabase(app: Flask) -> None:
    global _supabase
    if _supabase is not None:
        return

    url = app.config.get("SUPABASE_URL")
    key = app.config.get("SUPABASE_SERVICE_ROLE_KEY")

    if not url or not key:
        app.logger.warning("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY tidak di-set.")
        return

    try:
        _supabase = create_client(url, key)
        app.logger.info("Supabase client initialized.")
    except Exception as e:
        _supabase = None
        app.logger.error(f"Gagal inisialisasi Supabase: {e}", exc_info=True)


def get_supabase() -> Optional[Client]:
    return _supabase


def require_supabase() -> Client:
    """Seperti get_supabase(), tetapi gagal keras bila client belum siap."""
    sb = get_supabase()
    if sb is None:
        raise RuntimeError("Supabase belum dikonfigurasi (SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY).")
    return sb


# -------------------------
# Flask app wiring
# -------------------------
def init_app(app: Flask) -> None:
    """Dipanggil dari create_app()."""
    CORS(app, resources={r"/api/*": {"origins": "*"}})
    init_celery(app)
    init_supabase(app)
