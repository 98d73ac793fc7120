# api_relawan/app/utils/phone.py

from __future__ import annotations

import re
from typing import Optional

_NON_DIGIT = re.compile(r"\D")
_WA_SUFFIX = re.compile(r"@.*$")


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalisasi nomor HP Indonesia ke format 628xxx.
    "08xxx" -> "628xxx", "+628xxx" -> "628xxx", "628xxx" -> "628xxx".
    Return None bila input kosong / tidak ada digit sama sekali.
    Nomor dengan kode negara lain dikembalikan apa adanya (hanya digit).
    """
    if not phone:
        return None
    digits = _NON_DIGIT.sub("", phone)
    if not digits:
        return None
    if digits.startswith("0"):
        return "62" + digits[1:]
    return digits


def strip_wa_suffix(wa_id: str) -> str:
    """"628xxx@c.us" -> "628xxx" (format id peserta dari WAHA)."""
    return _WA_SUFFIX.sub("", wa_id or "")


def wa_id_to_phone(wa_id: str) -> Optional[str]:
    return normalize_phone(strip_wa_suffix(wa_id))
