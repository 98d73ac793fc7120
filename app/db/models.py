# app/db/models.py
"""
Nama tabel dan enum yang dipakai di skema Supabase.
Skema tabelnya sendiri dikelola di Supabase (migrasi SQL), bukan di sini.
"""
from enum import Enum as PyEnum

# ===== Tabel =====

MEMBERS = "members"
ALUMNI = "alumni"
EVENTS = "events"
EVENT_ATTENDANCE = "event_attendance"
EVENT_REGISTRATIONS = "event_registrations"
WA_GROUP_MEMBERS = "wa_group_members"
MEMBER_AUDIT_LOG = "member_audit_log"
USER_ROLES = "user_roles"
APP_SETTINGS = "app_settings"

# Kode error PostgreSQL: relation does not exist
PG_UNDEFINED_TABLE = "42P01"
# unique_violation
PG_UNIQUE_VIOLATION = "23505"

# ===== Enums =====

class StatusValue(PyEnum):
    SUDAH = "Sudah"
    BELUM = "Belum"


class EventStatus(PyEnum):
    TERJADWAL = "Terjadwal"
    BERLANGSUNG = "Berlangsung"
    SELESAI = "Selesai"
    DIBATALKAN = "Dibatalkan"


class EventJenis(PyEnum):
    SILATURAHMI = "Silaturahmi"
    RAPAT = "Rapat"
    DOOR_TO_DOOR = "Door-to-door"
    RALLY = "Rally"
    SOSIALISASI = "Sosialisasi"
    LAINNYA = "Lainnya"


class AuditAction(PyEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ASSIGN = "assign"
    UNASSIGN = "unassign"


# Transisi status kegiatan yang sah (lihat routes events PATCH)
EVENT_STATUS_TRANSITIONS = {
    EventStatus.TERJADWAL.value: {EventStatus.BERLANGSUNG.value, EventStatus.DIBATALKAN.value},
    EventStatus.BERLANGSUNG.value: {EventStatus.SELESAI.value, EventStatus.DIBATALKAN.value},
    EventStatus.SELESAI.value: set(),
    EventStatus.DIBATALKAN.value: set(),
}

# Field member yang boleh diubah per-field lewat PATCH
MEMBER_PATCHABLE_FIELDS = ("status_dpt", "sudah_dikontak", "masuk_grup", "vote", "pic")
MEMBER_STATUS_FIELDS = ("status_dpt", "sudah_dikontak", "masuk_grup", "vote")

EVENT_PATCHABLE_FIELDS = ("nama", "jenis", "deskripsi", "lokasi", "tanggal", "status")

# Field yang bisa diambil dari member "kalah" saat merge duplikat
MEMBER_MERGEABLE_FIELDS = (
    "nama", "angkatan", "no_hp", "pic", "email", "domisili",
    "status_dpt", "sudah_dikontak", "masuk_grup", "vote",
    "referral_name", "alumni_id",
)


class RegistrationType(PyEnum):
    DUKUNGAN = "dukungan"
    EVENT = "event"
