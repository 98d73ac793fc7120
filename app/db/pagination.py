# app/db/pagination.py

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from flask import current_app, has_app_context

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000


def _page_size(page_size: Optional[int]) -> int:
    if page_size:
        return int(page_size)
    if has_app_context():
        return int(current_app.config.get("FETCH_PAGE_SIZE", DEFAULT_PAGE_SIZE))
    return DEFAULT_PAGE_SIZE


def fetch_all(
    client,
    table: str,
    columns: str = "*",
    apply_filters: Optional[Callable[[Any], Any]] = None,
    page_size: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Ambil seluruh baris sebuah tabel walau PostgREST membatasi hasil per query.

    Halaman diminta berurutan (satu request dalam satu waktu) dengan
    .range(start, end). apply_filters dipanggil dengan query builder yang
    sama untuk setiap halaman. Error dari backend (APIError) tidak ditangkap
    sehingga pemanggil gagal seketika tanpa hasil parsial. Halaman kosong
    atau lebih pendek dari page_size menandakan akhir data.
    """
    size = _page_size(page_size)
    rows: List[Dict[str, Any]] = []
    start = 0
    pages = 0
    while True:
        query = client.table(table).select(columns).range(start, start + size - 1)
        if apply_filters is not None:
            query = apply_filters(query)
        data = query.execute().data or []
        pages += 1
        if not data:
            break
        rows.extend(data)
        if len(data) < size:
            break
        start += size

    logger.debug("fetch_all %s: %d baris dalam %d halaman", table, len(rows), pages)
    return rows
