# api_relawan/app/services/wa_group_service.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from flask import current_app, has_app_context
from postgrest.exceptions import APIError

from ..db import fetch_all
from ..db.models import MEMBERS, WA_GROUP_MEMBERS, StatusValue
from ..utils.errors import ValidationError
from ..utils.phone import normalize_phone, strip_wa_suffix, wa_id_to_phone
from ..utils.timez import utc_now_iso
from .settings_service import WAHA_CONFIG_KEY, get_setting_value
from .waha_client import WahaClient

logger = logging.getLogger(__name__)


def _timeout() -> float:
    if has_app_context():
        return float(current_app.config.get("WAHA_TIMEOUT", 15))
    return 15.0


def load_waha_config(client, require_session: bool = False) -> Dict[str, Any]:
    """Baca app_settings['waha_config']; baseUrl & groupId wajib ada."""
    config = get_setting_value(client, WAHA_CONFIG_KEY)
    if not isinstance(config, dict) or not config.get("baseUrl") or not config.get("groupId"):
        raise ValidationError("Konfigurasi WAHA belum lengkap")
    if require_session and not config.get("session"):
        raise ValidationError("Konfigurasi WAHA tidak lengkap (baseUrl, session, groupId diperlukan)")
    return config


def waha_from_settings(client, require_session: bool = False) -> tuple[WahaClient, str]:
    config = load_waha_config(client, require_session=require_session)
    return WahaClient.from_config(config, timeout=_timeout()), config["groupId"]


# ---------- rekonsiliasi flag masuk_grup ----------

def reconcile_group_flags(client, waha: WahaClient, group_id: str) -> Dict[str, int]:
    """
    Samakan members.masuk_grup dengan daftar peserta grup WA.

    Hanya member yang nilainya berbeda yang di-update (satu per satu), jadi
    menjalankan ulang dengan data yang sama menghasilkan updated=0.
    Error WAHA / baca members diteruskan; error update per member dihitung
    di 'failed'.
    """
    participants = waha.list_participants(group_id)
    participant_phones = set()
    for p in participants:
        phone = wa_id_to_phone(str(p.get("id") or ""))
        if phone:
            participant_phones.add(phone)

    members = fetch_all(client, MEMBERS, "id, no_hp, masuk_grup")
    logger.info(
        "[wa.reconcile] start participants=%d members=%d",
        len(participant_phones), len(members),
    )

    pending: List[Dict[str, str]] = []
    matched = 0
    already_correct = 0

    for member in members:
        normalized = normalize_phone(member.get("no_hp"))
        if not normalized:
            continue
        in_group = normalized in participant_phones
        should_be = StatusValue.SUDAH.value if in_group else StatusValue.BELUM.value
        if in_group:
            matched += 1
        if member.get("masuk_grup") != should_be:
            pending.append({"id": member["id"], "masuk_grup": should_be})
        else:
            already_correct += 1

    updated, failed = 0, 0
    for item in pending:
        try:
            client.table(MEMBERS).update({"masuk_grup": item["masuk_grup"]}).eq("id", item["id"]).execute()
            updated += 1
        except APIError as e:
            logger.warning("[wa.reconcile] gagal update member %s: %s", item["id"], e)
            failed += 1

    report = {
        "total_participants": len(participant_phones),
        "total_members": len(members),
        "matched": matched,
        "updated": updated,
        "already_correct": already_correct,
        "failed": failed,
    }
    logger.info("[wa.reconcile] done %s", report)
    return report


# ---------- sinkronisasi tabel wa_group_members ----------

def _member_phone_map(client) -> Dict[str, str]:
    phone_map: Dict[str, str] = {}
    for m in fetch_all(client, MEMBERS, "id, no_hp"):
        normalized = normalize_phone(m.get("no_hp"))
        if normalized:
            phone_map[normalized] = m["id"]
    return phone_map


def sync_participants(client, waha: WahaClient, group_id: str) -> Dict[str, int]:
    """
    Upsert peserta grup ke wa_group_members (kunci: phone), lalu tautkan
    baris yang belum punya member_id ke member dengan no_hp yang sama.
    """
    participants = waha.list_participants(group_id)
    now = utc_now_iso()

    synced = 0
    for p in participants:
        phone = strip_wa_suffix(str(p.get("id") or ""))
        if not phone:
            continue
        row = {"phone": phone, "wa_name": p.get("pushName") or p.get("name") or None, "synced_at": now}
        try:
            client.table(WA_GROUP_MEMBERS).upsert(row, on_conflict="phone").execute()
            synced += 1
        except APIError as e:
            logger.warning("[wa.sync] gagal upsert %s: %s", phone, e)

    unlinked = fetch_all(
        client, WA_GROUP_MEMBERS, "id, phone", lambda q: q.is_("member_id", "null")
    )
    phone_map = _member_phone_map(client) if unlinked else {}

    auto_linked = 0
    for wm in unlinked:
        member_id = phone_map.get(wm.get("phone"))
        if not member_id:
            continue
        try:
            client.table(WA_GROUP_MEMBERS).update({"member_id": member_id}).eq("id", wm["id"]).execute()
            auto_linked += 1
        except APIError as e:
            logger.warning("[wa.sync] gagal menautkan %s ke member %s: %s", wm["id"], member_id, e)

    logger.info("[wa.sync] synced=%d auto_linked=%d total=%d", synced, auto_linked, len(participants))
    return {"synced": synced, "auto_linked": auto_linked, "total": len(participants)}


def link_wa_member(client, wa_group_member_id: str, member_id: Optional[str]) -> None:
    client.table(WA_GROUP_MEMBERS).update({"member_id": member_id or None}).eq("id", wa_group_member_id).execute()


def group_stats(client) -> Dict[str, Any]:
    wa_rows = fetch_all(client, WA_GROUP_MEMBERS, "phone, member_id")
    linked = sum(1 for w in wa_rows if w.get("member_id"))
    phones = [w.get("phone") for w in wa_rows]
    phone_set = set(phones)

    member_in_group: Dict[str, bool] = {}
    for m in fetch_all(client, MEMBERS, "id, no_hp"):
        normalized = normalize_phone(m.get("no_hp"))
        if normalized and normalized in phone_set:
            member_in_group[m["id"]] = True

    return {
        "total_in_group": len(wa_rows),
        "linked": linked,
        "unlinked": len(wa_rows) - linked,
        "phones": phones,
        "member_in_group": member_in_group,
    }
