# api_relawan/app/utils/payload.py

from __future__ import annotations

from typing import Any, Dict

from flask import request

from .errors import ValidationError


def json_object() -> Dict[str, Any]:
    """
    Body JSON request sebagai dict. Body kosong / bukan JSON -> {}.
    Body JSON yang bukan objek (array, angka, string) -> 400.
    """
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Body JSON harus berupa objek")
    return payload


def text_field(payload: Dict[str, Any], key: str) -> str:
    """Nilai teks dari payload (di-trim). Angka diterima sebagai teks; tipe lain -> 400."""
    value = payload.get(key)
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ValidationError(f"{key} harus berupa teks")
