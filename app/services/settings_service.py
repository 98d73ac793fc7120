# api_relawan/app/services/settings_service.py

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from ..db.models import APP_SETTINGS
from ..utils.timez import utc_now_iso

WAHA_CONFIG_KEY = "waha_config"


def get_setting(client, key: str) -> Optional[Dict[str, Any]]:
    res = client.table(APP_SETTINGS).select("*").eq("key", key).maybe_single().execute()
    return res.data if res is not None else None


def get_setting_value(client, key: str) -> Any:
    row = get_setting(client, key)
    if not row:
        return None
    value = row.get("value")
    # Kolom jsonb kadang berisi string JSON (data lama)
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def upsert_setting(client, key: str, value: Any, user_id: Optional[str] = None) -> Dict[str, Any]:
    res = (
        client.table(APP_SETTINGS)
        .upsert(
            {"key": key, "value": value, "updated_at": utc_now_iso(), "updated_by": user_id},
            on_conflict="key",
        )
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else {"key": key, "value": value}
