# api_relawan/app/utils/responses.py

from __future__ import annotations

from flask import jsonify


def ok(**payload):
    """Envelope sukses standar: {"ok": true, ...payload}."""
    return jsonify(ok=True, **payload)


def error(message: str, status: int = 400, **extra):
    """Envelope gagal standar: ({"ok": false, "error": message}, status)."""
    return jsonify(ok=False, error=message, **extra), status
