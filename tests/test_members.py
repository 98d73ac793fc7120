def _seed(sb):
    sb.tables["members"] = [
        {"id": "m1", "no": 1, "nama": "Budi Santoso", "angkatan": 10, "no_hp": "0811", "status_dpt": None, "pic": None},
        {"id": "m2", "no": 2, "nama": "Siti Aminah", "angkatan": 11, "no_hp": "0822", "status_dpt": "Sudah", "referred_by": "m1"},
        {"id": "m3", "no": 3, "nama": "Budi Hartono", "angkatan": 11, "no_hp": "0833", "referred_by": "m1"},
    ]
    sb.tables["event_attendance"] = [
        {"id": "a1", "event_id": "e1", "member_id": "m1"},
        {"id": "a2", "event_id": "e1", "member_id": "m2"},
    ]
    sb.tables["event_registrations"] = [{"id": "r1", "event_id": "e1", "member_id": "m1"}]


# ---------- list ----------

def test_list_without_page_returns_all_ordered(client, sb):
    _seed(sb)
    body = client.get("/api/members/").get_json()
    assert [m["id"] for m in body["items"]] == ["m1", "m2", "m3"]
    assert body["total"] == 3


def test_list_with_search_and_page(client, sb):
    _seed(sb)
    body = client.get("/api/members/?search=budi&page=1&limit=1").get_json()
    assert body["total"] == 2
    assert body["total_pages"] == 2
    assert [m["id"] for m in body["items"]] == ["m1"]

    body = client.get("/api/members/?angkatan=11").get_json()
    assert {m["id"] for m in body["items"]} == {"m2", "m3"}


# ---------- create ----------

def test_create_assigns_next_no_and_audits(client, sb, campaigner_headers):
    _seed(sb)
    res = client.post(
        "/api/members/",
        json={"nama": " Rina ", "angkatan": "12", "no_hp": "0844"},
        headers=campaigner_headers,
    )
    assert res.status_code == 201
    item = res.get_json()["item"]
    assert item["no"] == 4
    assert item["nama"] == "Rina"
    assert item["angkatan"] == 12

    audit = sb.tables["member_audit_log"]
    assert audit[0]["action"] == "create"
    assert audit[0]["user_id"] == "u-camp"


def test_create_validation(client, sb, admin_headers):
    assert client.post("/api/members/", json={"nama": "X"}, headers=admin_headers).status_code == 400
    res = client.post("/api/members/", json={"nama": "X", "angkatan": "abc"}, headers=admin_headers)
    assert res.status_code == 400


def test_viewer_cannot_create(client, sb, viewer_headers):
    res = client.post("/api/members/", json={"nama": "X", "angkatan": 1}, headers=viewer_headers)
    assert res.status_code == 403
    assert "members" not in sb.tables


# ---------- patch ----------

def test_patch_whitelisted_field_writes_audit(client, sb, campaigner_headers):
    _seed(sb)
    res = client.patch(
        "/api/members/m1", json={"field": "status_dpt", "value": "Sudah"}, headers=campaigner_headers,
    )
    assert res.status_code == 200
    assert sb.tables["members"][0]["status_dpt"] == "Sudah"

    entry = sb.tables["member_audit_log"][0]
    assert entry["field"] == "status_dpt"
    assert entry["old_value"] is None
    assert entry["new_value"] == "Sudah"
    assert entry["action"] == "update"
    assert entry["user_email"] == "u-camp@example.com"


def test_patch_legacy_body_id(client, sb, admin_headers):
    _seed(sb)
    res = client.patch(
        "/api/members/", json={"id": "m2", "field": "pic", "value": "Andi"}, headers=admin_headers,
    )
    assert res.status_code == 200
    assert sb.tables["members"][1]["pic"] == "Andi"


def test_patch_status_can_be_cleared(client, sb, admin_headers):
    _seed(sb)
    res = client.patch("/api/members/m2", json={"field": "status_dpt", "value": None}, headers=admin_headers)
    assert res.status_code == 200
    assert sb.tables["members"][1]["status_dpt"] is None


def test_patch_rejects_unknown_field_and_bad_value(client, sb, admin_headers):
    _seed(sb)
    res = client.patch("/api/members/m1", json={"field": "nama", "value": "Hacker"}, headers=admin_headers)
    assert res.status_code == 400
    assert res.get_json()["error"] == "Invalid field"

    res = client.patch("/api/members/m1", json={"field": "vote", "value": "Mungkin"}, headers=admin_headers)
    assert res.status_code == 400
    assert sb.calls_for("members", "update") == []


def test_patch_missing_member_is_404(client, sb, admin_headers):
    _seed(sb)
    res = client.patch("/api/members/ghost", json={"field": "pic", "value": "x"}, headers=admin_headers)
    assert res.status_code == 404


def test_viewer_cannot_patch(client, sb, viewer_headers):
    _seed(sb)
    res = client.patch("/api/members/m1", json={"field": "pic", "value": "x"}, headers=viewer_headers)
    assert res.status_code == 403
    assert sb.calls_for("members") == []


def test_audit_failure_does_not_fail_update(client, sb, admin_headers):
    _seed(sb)
    sb.fail_when("member_audit_log", "insert", message="audit down")

    res = client.patch("/api/members/m1", json={"field": "pic", "value": "Andi"}, headers=admin_headers)

    assert res.status_code == 200
    assert sb.tables["members"][0]["pic"] == "Andi"


# ---------- delete ----------

def test_delete_cascades_and_clears_referrals(client, sb, admin_headers):
    _seed(sb)
    res = client.delete("/api/members/m1", headers=admin_headers)

    assert res.status_code == 200
    assert [m["id"] for m in sb.tables["members"]] == ["m2", "m3"]
    assert all(m.get("referred_by") is None for m in sb.tables["members"])
    assert [a["id"] for a in sb.tables["event_attendance"]] == ["a2"]
    assert sb.tables["event_registrations"] == []
    assert sb.tables["member_audit_log"][-1]["action"] == "delete"


def test_campaigner_cannot_delete(client, sb, campaigner_headers):
    _seed(sb)
    res = client.delete("/api/members/m1", headers=campaigner_headers)
    assert res.status_code == 403
    assert res.get_json()["error"] == "Hanya admin yang dapat menghapus anggota"
    assert len(sb.tables["members"]) == 3


def test_delete_missing_member_is_404(client, sb, admin_headers):
    _seed(sb)
    assert client.delete("/api/members/ghost", headers=admin_headers).status_code == 404


# ---------- audit history ----------

def test_audit_history_newest_first(client, sb):
    sb.tables["member_audit_log"] = [
        {"id": "l1", "member_id": "m1", "field": "pic", "created_at": "2024-01-01T00:00:00+00:00"},
        {"id": "l2", "member_id": "m1", "field": "vote", "created_at": "2024-02-01T00:00:00+00:00"},
        {"id": "l3", "member_id": "m2", "field": "vote", "created_at": "2024-03-01T00:00:00+00:00"},
    ]
    body = client.get("/api/members/m1/audit").get_json()
    assert [r["id"] for r in body["items"]] == ["l2", "l1"]


def test_audit_history_missing_table_is_empty(client, sb):
    sb.fail_when("member_audit_log", "select", message='relation "member_audit_log" does not exist', code="42P01")
    res = client.get("/api/members/m1/audit")
    assert res.status_code == 200
    assert res.get_json()["items"] == []


def test_audit_history_other_errors_propagate(client, sb):
    sb.fail_when("member_audit_log", "select", message="permission denied", code="42501")
    res = client.get("/api/members/m1/audit")
    assert res.status_code == 500


def test_patch_rejects_non_text_status_value(client, sb, admin_headers):
    _seed(sb)
    for value in ([], {"x": 1}, 1):
        res = client.patch("/api/members/m1", json={"field": "vote", "value": value}, headers=admin_headers)
        assert res.status_code == 400
    assert sb.calls_for("members", "update") == []


# ---------- merge ----------

def test_merge_moves_relations_and_deletes_loser(client, sb, admin_headers):
    _seed(sb)
    sb.tables["wa_group_members"] = [{"id": "w1", "phone": "62811", "member_id": "m1"}]

    res = client.post(
        "/api/members/merge",
        json={"winner_id": "m2", "loser_id": "m1", "fields": {"no_hp": "loser", "nama": "winner"}},
        headers=admin_headers,
    )

    assert res.status_code == 200
    member = res.get_json()["member"]
    assert member["id"] == "m2"
    assert member["no_hp"] == "0811"
    assert member["nama"] == "Siti Aminah"

    members = {m["id"]: m for m in sb.tables["members"]}
    assert set(members) == {"m2", "m3"}
    # m2 dulu direferensikan oleh m1 -> tidak boleh menunjuk dirinya sendiri
    assert members["m2"]["referred_by"] is None
    assert members["m3"]["referred_by"] == "m2"

    # winner sudah hadir di e1, absensi loser di e1 dibuang
    assert [(a["id"], a["member_id"]) for a in sb.tables["event_attendance"]] == [("a2", "m2")]
    assert [(r["id"], r["member_id"]) for r in sb.tables["event_registrations"]] == [("r1", "m2")]
    assert sb.tables["wa_group_members"][0]["member_id"] == "m2"

    audit = sb.tables["member_audit_log"]
    assert [(a["member_id"], a["field"], a["action"]) for a in audit] == [
        ("m2", "no_hp", "update"),
        ("m1", "*", "delete"),
    ]
    assert audit[0]["old_value"] == "0822"
    assert audit[1]["new_value"] == "m2"


def test_merge_without_loser_picks_keeps_winner_values(client, sb, campaigner_headers):
    _seed(sb)
    res = client.post(
        "/api/members/merge",
        json={"winner_id": "m1", "loser_id": "m3", "fields": {}},
        headers=campaigner_headers,
    )
    assert res.status_code == 200
    assert res.get_json()["member"]["no_hp"] == "0811"
    assert [m["id"] for m in sb.tables["members"]] == ["m1", "m2"]
    assert [a["action"] for a in sb.tables["member_audit_log"]] == ["delete"]


def test_merge_validation(client, sb, admin_headers):
    _seed(sb)
    res = client.post("/api/members/merge", json={"winner_id": "m1", "loser_id": "m2"}, headers=admin_headers)
    assert res.status_code == 400
    assert res.get_json()["error"] == "winner_id, loser_id, dan fields diperlukan"

    res = client.post(
        "/api/members/merge", json={"winner_id": "m1", "loser_id": "m1", "fields": {}}, headers=admin_headers
    )
    assert res.status_code == 400
    assert res.get_json()["error"] == "Tidak bisa merge member yang sama"

    res = client.post(
        "/api/members/merge", json={"winner_id": "ghost", "loser_id": "m1", "fields": {}}, headers=admin_headers
    )
    assert res.status_code == 404
    assert res.get_json()["error"] == "Member pemenang tidak ditemukan"

    res = client.post(
        "/api/members/merge", json={"winner_id": "m1", "loser_id": "ghost", "fields": {}}, headers=admin_headers
    )
    assert res.status_code == 404
    assert res.get_json()["error"] == "Member yang dihapus tidak ditemukan"
    assert len(sb.tables["members"]) == 3


def test_viewer_cannot_merge(client, sb, viewer_headers):
    _seed(sb)
    res = client.post(
        "/api/members/merge", json={"winner_id": "m1", "loser_id": "m2", "fields": {}}, headers=viewer_headers
    )
    assert res.status_code == 403
    assert sb.calls_for("members") == []
