# api_relawan/app/services/alumni_import.py
"""Impor daftar alumni dari workbook Excel (satu sheet per angkatan)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from postgrest.exceptions import APIError

from ..db import fetch_all
from ..db.models import ALUMNI

logger = logging.getLogger(__name__)

INSERT_BATCH = 500


def sheet_angkatan(sheet_name: str) -> Optional[int]:
    """"TN 1".."TN 32" -> 1..32, KELAS XII/XI/X -> 33/34/35."""
    name = (sheet_name or "").strip().upper()
    if name.startswith("TN "):
        try:
            return int(name[3:].strip())
        except ValueError:
            return None
    return {"KELAS XII": 33, "KELAS XI": 34, "KELAS X": 35}.get(name)


def _cell(row: Sequence[Any], idx: int) -> Optional[str]:
    if idx < 0 or idx >= len(row) or row[idx] is None:
        return None
    value = str(row[idx]).strip()
    if value in ("", "None", "null", "undefined"):
        return None
    return value


def parse_rows(rows: List[Sequence[Any]], angkatan: int) -> List[Dict[str, Any]]:
    """Baris pertama = header. Sheet tanpa kolom NAMA dilewati."""
    if len(rows) < 2:
        return []
    header = [str(h).lower().strip() if h is not None else "" for h in rows[0]]

    def find(pred) -> int:
        return next((i for i, h in enumerate(header) if pred(h)), -1)

    nama_idx = find(lambda h: h == "nama")
    if nama_idx == -1:
        logger.warning("Sheet angkatan %s tidak punya kolom NAMA, dilewati", angkatan)
        return []
    nosis_idx = find(lambda h: h == "nosis")
    kelanjutan_idx = find(lambda h: "kelanjutan" in h)
    program_idx = find(lambda h: "program studi" in h or h == "fakultas")
    keterangan_idx = find(lambda h: "keterangan" in h)

    alumni = []
    for row in rows[1:]:
        if not row:
            continue
        nama = _cell(row, nama_idx)
        if not nama:
            continue
        alumni.append({
            "nosis": _cell(row, nosis_idx),
            "nama": nama,
            "angkatan": angkatan,
            "kelanjutan_studi": _cell(row, kelanjutan_idx),
            "program_studi": _cell(row, program_idx),
            "keterangan": _cell(row, keterangan_idx),
        })
    return alumni


def upsert_alumni(client, alumni_list: List[Dict[str, Any]], angkatan: int) -> Dict[str, int]:
    """
    Alumni dengan nama sama (case-insensitive) di angkatan yang sama di-update,
    sisanya di-insert per batch. Batch gagal -> insert satu per satu.
    """
    existing = fetch_all(client, ALUMNI, "id, nama", lambda q: q.eq("angkatan", angkatan))
    existing_map = {(a.get("nama") or "").lower().strip(): a["id"] for a in existing}

    to_insert, seen = [], set()
    updated = errors = 0
    for alumni in alumni_list:
        key = alumni["nama"].lower().strip()
        existing_id = existing_map.get(key)
        if existing_id:
            try:
                client.table(ALUMNI).update({
                    "nosis": alumni["nosis"],
                    "kelanjutan_studi": alumni["kelanjutan_studi"],
                    "program_studi": alumni["program_studi"],
                    "keterangan": alumni["keterangan"],
                }).eq("id", existing_id).execute()
                updated += 1
            except APIError as e:
                logger.warning("Gagal update alumni %s: %s", existing_id, e)
                errors += 1
        elif key not in seen:
            seen.add(key)
            to_insert.append(alumni)

    inserted = 0
    for i in range(0, len(to_insert), INSERT_BATCH):
        batch = to_insert[i:i + INSERT_BATCH]
        try:
            client.table(ALUMNI).insert(batch).execute()
            inserted += len(batch)
        except APIError:
            logger.info("Batch insert gagal, fallback insert satu per satu...")
            for item in batch:
                try:
                    client.table(ALUMNI).insert(item).execute()
                    inserted += 1
                except APIError as e:
                    logger.warning("Gagal insert alumni %s: %s", item["nama"], e)
                    errors += 1

    return {"inserted": inserted, "updated": updated, "errors": errors}
