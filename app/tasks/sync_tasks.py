# app/tasks/sync_tasks.py
from __future__ import annotations

import logging
from typing import Any, Dict

from app.extensions import celery, require_supabase
from app.services import alumni_linker, wa_group_service

logger = logging.getLogger(__name__)
logger.info("[sync.tasks] loaded from %s", __file__)


@celery.task(name="sync.healthcheck", bind=True)
def healthcheck(self) -> Dict[str, Any]:
    host = getattr(getattr(self, "request", None), "hostname", "unknown")
    logger.info("[sync.healthcheck] OK from %s", host)
    return {"status": "ok", "host": host}


@celery.task(name="sync.reconcile_wa_group", bind=True)
def reconcile_wa_group_task(self) -> Dict[str, Any]:
    """Rekonsiliasi masuk_grup terjadwal (lihat WA_SYNC_INTERVAL_MINUTES)."""
    logger.info("[reconcile_wa_group_task] start")
    try:
        sb = require_supabase()
        waha, group_id = wa_group_service.waha_from_settings(sb)
        report = wa_group_service.reconcile_group_flags(sb, waha, group_id)
    except Exception as e:
        logger.exception("[reconcile_wa_group_task] error: %s", e)
        return {"status": "error", "message": str(e)}
    return {"status": "ok", **report}


@celery.task(name="sync.auto_link_alumni", bind=True)
def auto_link_alumni_task(self) -> Dict[str, Any]:
    logger.info("[auto_link_alumni_task] start")
    try:
        result = alumni_linker.auto_link(require_supabase())
    except Exception as e:
        logger.exception("[auto_link_alumni_task] error: %s", e)
        return {"status": "error", "message": str(e)}
    return {"status": "ok", **result}
