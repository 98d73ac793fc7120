# api_relawan/app/services/waha_client.py
"""Klien tipis untuk WAHA (WhatsApp HTTP API)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from ..utils.errors import UpstreamError

logger = logging.getLogger(__name__)


class WahaClient:
    def __init__(self, base_url: str, session: str = "default", api_key: Optional[str] = None, timeout: float = 15):
        self.base_url = (base_url or "").rstrip("/")
        self.session = session or "default"
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: Dict[str, Any], timeout: float = 15) -> "WahaClient":
        return cls(
            base_url=config.get("baseUrl"),
            session=config.get("session") or "default",
            api_key=config.get("apiKey"),
            timeout=timeout,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["X-Api-Key"] = self.api_key
        return headers

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None):
        url = f"{self.base_url}/api/{quote(self.session, safe='')}{path}"
        try:
            response = requests.get(url, headers=self._headers(), params=params, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise UpstreamError(f"WAHA tidak merespon dalam {self.timeout} detik")
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f"Gagal menghubungi WAHA: {e}")

        if not response.ok:
            raise UpstreamError(f"WAHA API error ({response.status_code}): {response.text}")
        try:
            return response.json()
        except ValueError:
            raise UpstreamError("Respon WAHA bukan JSON yang valid")

    def list_groups(self) -> Any:
        return self._get("/chats", params={"chatType": "group"})

    def list_participants(self, group_id: str) -> List[Dict[str, Any]]:
        data = self._get(f"/groups/{quote(group_id, safe='')}/participants")
        if not isinstance(data, list):
            raise UpstreamError("Format respon WAHA tidak valid (expected array)")
        logger.info("WAHA: %d peserta di grup %s", len(data), group_id)
        return data
