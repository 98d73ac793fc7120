# api_relawan/app/services/alumni_linker.py

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from postgrest.exceptions import APIError

from ..db import fetch_all
from ..db.models import ALUMNI, MEMBERS, AuditAction
from .audit_service import log_member_audit_batch

logger = logging.getLogger(__name__)

CERTAIN_THRESHOLD = 0.85
MIN_SIMILARITY = 0.5
ABBREV_FLOOR = 0.75

_TITLE_PREFIX = re.compile(r"^(dr\.?|ir\.?|h\.?|hj\.?|prof\.?|drs\.?|m\.?)\s+", re.IGNORECASE)
_TITLE_SUFFIX = re.compile(r"\s+(s\.?h\.?|s\.?e\.?|m\.?m\.?|m\.?b\.?a\.?)$", re.IGNORECASE)
_SPACES = re.compile(r"\s+")


def _assign_entry(member_id, alumni_id, user_id, user_email) -> Dict[str, Any]:
    return {
        "member_id": member_id,
        "field": "alumni_id",
        "old_value": None,
        "new_value": alumni_id,
        "action": AuditAction.ASSIGN,
        "user_id": user_id,
        "user_email": user_email,
    }


# ---------- mode konfirmasi ----------

def link_pairs(
    client,
    pairs: Iterable[Dict[str, Any]],
    user_id: Optional[str] = None,
    user_email: Optional[str] = None,
) -> Dict[str, int]:
    """
    Tautkan pasangan member <-> alumni yang sudah dikonfirmasi manusia.
    Satu pasangan gagal tidak menghentikan yang lain. Update yang tidak
    mengenai baris apa pun (member_id tidak ada) dihitung gagal.
    """
    linked, failed = 0, 0
    audit: List[Dict[str, Any]] = []
    for pair in pairs:
        if not isinstance(pair, dict):
            failed += 1
            continue
        member_id = pair.get("member_id")
        alumni_id = pair.get("alumni_id")
        if not member_id or not alumni_id:
            failed += 1
            continue
        try:
            res = (
                client.table(MEMBERS)
                .update({"alumni_id": alumni_id})
                .eq("id", member_id)
                .execute()
            )
        except APIError as e:
            logger.warning("Gagal menautkan member %s ke alumni %s: %s", member_id, alumni_id, e)
            failed += 1
            continue
        if res.data:
            linked += 1
            audit.append(_assign_entry(member_id, alumni_id, user_id, user_email))
        else:
            logger.warning("Member %s tidak ditemukan saat menautkan alumni %s", member_id, alumni_id)
            failed += 1

    log_member_audit_batch(client, audit)
    logger.info("[alumni.link_pairs] linked=%d failed=%d", linked, failed)
    return {"linked": linked, "failed": failed}


# ---------- mode auto-link (legacy) ----------

def _find_alumni_match(client, nama: str, angkatan) -> Optional[Dict[str, Any]]:
    res = (
        client.table(ALUMNI)
        .select("id")
        .ilike("nama", nama.strip())
        .eq("angkatan", angkatan)
        .order("id")
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None


def auto_link(client, user_id: Optional[str] = None, user_email: Optional[str] = None) -> Dict[str, Any]:
    """
    Tautkan member yang belum punya alumni_id ke alumni dengan nama sama
    persis (case-insensitive) dan angkatan sama. Satu query per member.

    Gagal ambil daftar member -> APIError diteruskan ke pemanggil.
    Error per-member (lookup / update) tidak menghentikan batch; dihitung
    di 'failed'.
    """
    members = fetch_all(
        client,
        MEMBERS,
        "id, nama, angkatan",
        lambda q: q.is_("alumni_id", "null"),
    )
    logger.info("[alumni.auto_link] start unlinked=%d", len(members))

    matched, unmatched, failed = 0, 0, 0
    unmatched_names: List[str] = []
    audit: List[Dict[str, Any]] = []

    for member in members:
        nama = member.get("nama") or ""
        angkatan = member.get("angkatan")
        try:
            match = _find_alumni_match(client, nama, angkatan)
            if match is None:
                unmatched += 1
                unmatched_names.append(f"{nama} (TN{angkatan})")
                continue
            client.table(MEMBERS).update({"alumni_id": match["id"]}).eq("id", member["id"]).execute()
            matched += 1
            audit.append(_assign_entry(member["id"], match["id"], user_id, user_email))
        except APIError as e:
            logger.warning("[alumni.auto_link] member %s gagal diproses: %s", member.get("id"), e)
            failed += 1

    log_member_audit_batch(client, audit)
    logger.info(
        "[alumni.auto_link] done matched=%d unmatched=%d failed=%d",
        matched, unmatched, failed,
    )
    return {
        "matched": matched,
        "unmatched": unmatched,
        "unmatched_names": unmatched_names,
        "failed": failed,
    }


# ---------- preview kandidat (fuzzy) ----------

def normalize_name(name: str) -> str:
    """lowercase, trim, rapikan spasi, buang gelar umum di depan/belakang."""
    out = _SPACES.sub(" ", (name or "").lower().strip())
    out = _TITLE_PREFIX.sub("", out)
    out = _TITLE_SUFFIX.sub("", out)
    return out


def _bigrams(s: str) -> set:
    return {s[i:i + 2] for i in range(len(s) - 1)}


def bigram_similarity(a: str, b: str) -> float:
    """Koefisien Dice atas bigram, 0..1."""
    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0
    ba, bb = _bigrams(a), _bigrams(b)
    return (2 * len(ba & bb)) / (len(ba) + len(bb))


def abbreviation_match(member_name: str, alumni_name: str) -> bool:
    """Cek singkatan, mis. "m. arief" cocok dengan "muhammad arief"."""
    m_parts = member_name.split(" ")
    a_parts = alumni_name.split(" ")
    mi = ai = 0
    match_count = 0

    while mi < len(m_parts) and ai < len(a_parts):
        mp, ap = m_parts[mi], a_parts[ai]
        if (
            mp == ap
            or (len(mp) <= 2 and ap.startswith(mp.replace(".", "", 1)))
            or (len(ap) <= 2 and mp.startswith(ap.replace(".", "", 1)))
        ):
            match_count += 1
            mi += 1
            ai += 1
        else:
            ai += 1

    min_parts = min(len(m_parts), len(a_parts))
    return match_count >= 2 and match_count >= min_parts - 1


def _best_match(member_name: str, alumni_rows: List[Dict[str, Any]]):
    best = None
    for alumni in alumni_rows:
        alumni_name = normalize_name(alumni.get("nama") or "")
        if member_name == alumni_name:
            return {"alumni": alumni, "score": 1.0, "exact": True}

        is_abbrev = abbreviation_match(member_name, alumni_name)
        score = bigram_similarity(member_name, alumni_name)

        if score >= MIN_SIMILARITY and (best is None or score > best["score"]):
            best = {"alumni": alumni, "score": score, "exact": False}
        elif is_abbrev and (best is None or best["score"] < 0.8):
            best = {"alumni": alumni, "score": max(score, ABBREV_FLOOR), "exact": False}
    return best


def preview_candidates(client) -> Dict[str, Any]:
    """
    Usulan pasangan member <-> alumni untuk dikonfirmasi admin (lihat
    link_pairs). Hanya alumni seangkatan yang belum tertaut yang dipertimbangkan.
    """
    members = fetch_all(
        client, MEMBERS, "id, nama, angkatan", lambda q: q.is_("alumni_id", "null")
    )
    if not members:
        return {
            "candidates": [],
            "total_unlinked": 0,
            "total_certain": 0,
            "total_uncertain": 0,
            "total_no_match": 0,
        }

    angkatan_set = sorted({m.get("angkatan") for m in members if m.get("angkatan") is not None})
    alumni_rows = fetch_all(
        client, ALUMNI, "id, nama, angkatan", lambda q: q.in_("angkatan", angkatan_set)
    )
    linked_ids = {
        r["alumni_id"]
        for r in fetch_all(
            client, MEMBERS, "alumni_id", lambda q: q.not_.is_("alumni_id", "null")
        )
    }

    by_angkatan: Dict[Any, List[Dict[str, Any]]] = {}
    for a in alumni_rows:
        if a["id"] in linked_ids:
            continue
        by_angkatan.setdefault(a.get("angkatan"), []).append(a)

    candidates = []
    for member in members:
        best = _best_match(
            normalize_name(member.get("nama") or ""),
            by_angkatan.get(member.get("angkatan"), []),
        )
        if best is None:
            continue
        certain = best["exact"] or best["score"] >= CERTAIN_THRESHOLD
        candidates.append({
            "member_id": member["id"],
            "member_nama": member.get("nama"),
            "member_angkatan": member.get("angkatan"),
            "alumni_id": best["alumni"]["id"],
            "alumni_nama": best["alumni"].get("nama"),
            "alumni_angkatan": best["alumni"].get("angkatan"),
            "confidence": "certain" if certain else "uncertain",
            "similarity": round(best["score"] * 100),
        })

    candidates.sort(key=lambda c: (c["confidence"] != "certain", -c["similarity"]))
    total_certain = sum(1 for c in candidates if c["confidence"] == "certain")
    return {
        "candidates": candidates,
        "total_unlinked": len(members),
        "total_certain": total_certain,
        "total_uncertain": len(candidates) - total_certain,
        "total_no_match": len(members) - len(candidates),
    }
