# api_relawan/app/services/alumni_service.py

from __future__ import annotations

from typing import Any, Dict, Optional

from ..db import fetch_all
from ..db.models import ALUMNI, MEMBERS


def list_alumni(
    client,
    search: Optional[str] = None,
    angkatan: Optional[int] = None,
    linked: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
) -> Dict[str, Any]:
    offset = (page - 1) * limit
    query = client.table(ALUMNI).select(
        "*, members!alumni_id(id, no, no_hp, pic, status_dpt, sudah_dikontak, masuk_grup, vote)",
        count="exact",
    )
    if search:
        query = query.ilike("nama", f"%{search}%")
    if angkatan is not None:
        query = query.eq("angkatan", angkatan)
    res = (
        query.order("angkatan")
        .order("nama")
        .range(offset, offset + limit - 1)
        .execute()
    )

    rows = res.data or []
    # Filter status tertaut dilakukan setelah query (join null sulit difilter di PostgREST)
    if linked == "true":
        rows = [a for a in rows if a.get("members")]
    elif linked == "false":
        rows = [a for a in rows if not a.get("members")]

    total = res.count or 0
    return {
        "data": rows,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": -(-total // limit) if limit else 0,
    }


def search_alumni(client, q: str = "", angkatan: Optional[int] = None, page: int = 1, limit: int = 20) -> Dict[str, Any]:
    offset = (page - 1) * limit
    query = client.table(ALUMNI).select(
        "id, nama, angkatan, kelanjutan_studi, program_studi, members!alumni_id(id, nama)",
        count="exact",
    )
    if len(q) >= 2:
        query = query.ilike("nama", f"%{q}%")
    if angkatan is not None:
        query = query.eq("angkatan", angkatan)
    res = (
        query.order("angkatan")
        .order("nama")
        .range(offset, offset + limit - 1)
        .execute()
    )
    return {"data": res.data or [], "total": res.count or 0, "page": page, "limit": limit}


def alumni_stats(client) -> Dict[str, Any]:
    total = client.table(ALUMNI).select("id", count="exact").limit(1).execute().count or 0

    linked_rows = fetch_all(
        client, MEMBERS, "alumni_id", lambda q: q.not_.is_("alumni_id", "null")
    )
    distinct_linked = len({r["alumni_id"] for r in linked_rows})

    by_angkatan: Dict[str, int] = {}
    for row in fetch_all(client, ALUMNI, "angkatan"):
        key = str(row.get("angkatan"))
        by_angkatan[key] = by_angkatan.get(key, 0) + 1

    return {
        "total_alumni": total,
        "linked_alumni": distinct_linked,
        "alumni_by_angkatan": by_angkatan,
    }
