import pytest

from app.core.errors import ErrorMessages, PermissionDeniedError
from app.models.user import AdminPrincipal, CitizenPrincipal, OfficerPrincipal, principal_from_user
from app.services import access_scope


def test_principal_from_user_picks_variant():
    officer = principal_from_user({
        "id": "o1",
        "email": "o1@civicdesk.in",
        "role": "officer",
        "assigned_departments": ["d1"],
        "password_hash": "ignored",
    })
    assert isinstance(officer, OfficerPrincipal)
    assert officer.is_assigned_to("d1")
    assert not officer.is_assigned_to("d2")
    assert not officer.is_assigned_to(None)

    assert isinstance(principal_from_user({"id": "a", "email": "a@civicdesk.in", "role": "admin"}), AdminPrincipal)


def test_report_filters_per_role():
    citizen = CitizenPrincipal(id="c1", email="c1@civicdesk.in")
    officer = OfficerPrincipal(id="o1", email="o1@civicdesk.in", assigned_departments=["d1", "d2"])
    admin = AdminPrincipal(id="a1", email="a1@civicdesk.in")

    assert access_scope.report_filters(citizen) == [("citizen_id", "==", "c1")]
    assert access_scope.report_filters(officer) == [("department_id", "in", ["d1", "d2"])]
    assert access_scope.report_filters(officer, "d2") == [("department_id", "==", "d2")]
    assert access_scope.report_filters(admin) == []
    assert access_scope.report_filters(admin, "d9") == [("department_id", "==", "d9")]


def test_officer_without_assignments_sees_nothing():
    officer = OfficerPrincipal(id="o1", email="o1@civicdesk.in")
    assert access_scope.report_filters(officer) is None


def test_officer_unassigned_department_denied():
    officer = OfficerPrincipal(id="o1", email="o1@civicdesk.in", assigned_departments=["d1"])
    with pytest.raises(PermissionDeniedError):
        access_scope.report_filters(officer, "d2")
    with pytest.raises(PermissionDeniedError):
        access_scope.ensure_report_manager(officer, {"id": "r1", "department_id": "d2"})
    access_scope.ensure_report_manager(officer, {"id": "r1", "department_id": "d1"})


def test_citizen_can_never_manage_reports():
    citizen = CitizenPrincipal(id="c1", email="c1@civicdesk.in")
    with pytest.raises(PermissionDeniedError):
        access_scope.ensure_report_manager(citizen, {"id": "r1", "citizen_id": "c1", "department_id": "d1"})


def test_unknown_principal_variant_raises_type_error():
    with pytest.raises(TypeError):
        access_scope.report_filters(object())
    with pytest.raises(TypeError):
        access_scope.can_access_emergency(object(), {})


def test_officer_list_excludes_unassigned_departments(
    client, citizen, officer, department, other_department, file_report
):
    mine = file_report(citizen, department["id"])
    file_report(citizen, other_department["id"])

    resp = client.get("/api/reports", headers=officer["headers"])
    reports = resp.json()["data"]["reports"]
    assert [r["id"] for r in reports] == [mine["id"]]

    resp = client.get("/api/reports", params={"department": other_department["id"]}, headers=officer["headers"])
    assert resp.status_code == 403
    assert resp.json()["message"] == ErrorMessages.DEPARTMENT_NOT_ASSIGNED


def test_officer_cannot_open_or_change_other_department_report(
    client, citizen, officer, other_department, file_report
):
    foreign = file_report(citizen, other_department["id"])

    assert client.get(f"/api/reports/{foreign['id']}", headers=officer["headers"]).status_code == 403
    resp = client.patch(
        f"/api/officer/reports/{foreign['id']}/status",
        json={"status": "in_progress"},
        headers=officer["headers"],
    )
    assert resp.status_code == 403

    stored = client.get(f"/api/reports/{foreign['id']}", headers=citizen["headers"]).json()["data"]["report"]
    assert stored["status"] == "submitted"


def test_officer_without_assignments_gets_empty_list(client, make_user, citizen, department, file_report):
    file_report(citizen, department["id"])
    idle = make_user("officer", "idle@civicdesk.in")

    resp = client.get("/api/reports", headers=idle["headers"])
    assert resp.status_code == 200
    assert resp.json()["data"]["reports"] == []
    assert resp.json()["data"]["pagination"]["total"] == 0


def test_citizen_cannot_open_someone_elses_report(client, citizen, other_citizen, department, file_report):
    report = file_report(citizen, department["id"])

    resp = client.get(f"/api/reports/{report['id']}", headers=other_citizen["headers"])
    assert resp.status_code == 403
    assert resp.json()["message"] == ErrorMessages.REPORT_ACCESS_DENIED

    listed = client.get("/api/reports", headers=other_citizen["headers"]).json()["data"]["reports"]
    assert listed == []


def test_admin_sees_every_report(client, admin, citizen, department, other_department, file_report):
    file_report(citizen, department["id"])
    file_report(citizen, other_department["id"])

    resp = client.get("/api/admin/reports", headers=admin["headers"])
    assert resp.json()["data"]["pagination"]["total"] == 2


def test_department_header_is_validated(client, officer, department, other_department):
    resp = client.get("/api/officer/dashboard", headers=officer["headers"])
    assert resp.status_code == 400
    assert resp.json()["message"] == ErrorMessages.DEPARTMENT_SELECTION_REQUIRED

    foreign = {**officer["headers"], "X-Department-Id": other_department["id"]}
    assert client.get("/api/officer/dashboard", headers=foreign).status_code == 403

    resp = client.get("/api/officer/dashboard", headers=officer["dept_headers"])
    assert resp.status_code == 200
    assert resp.json()["data"]["department"]["id"] == department["id"]


def test_stale_department_header_only_blocks_department_endpoints(
    client, admin, make_user, citizen, department, other_department, file_report
):
    officer = make_user("officer", "both@civicdesk.in", departments=[department["id"], other_department["id"]])
    water_report = file_report(citizen, other_department["id"])
    client.patch(f"/api/departments/{department['id']}/toggle-status", headers=admin["headers"])
    stale = {**officer["headers"], "X-Department-Id": department["id"]}

    resp = client.get("/api/officer/dashboard", headers=stale)
    assert resp.status_code == 403
    assert resp.json()["message"] == ErrorMessages.DEPARTMENT_INACTIVE

    resp = client.post(
        "/api/officer/select-department",
        json={"department_id": other_department["id"]},
        headers=stale,
    )
    assert resp.status_code == 200

    resp = client.patch(
        f"/api/officer/reports/{water_report['id']}/status",
        json={"status": "in_progress"},
        headers=stale,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["report"]["status"] == "in_progress"

    assert client.post("/api/auth/logout", headers=stale).status_code == 200


def test_select_department(client, officer, department, other_department):
    resp = client.post(
        "/api/officer/select-department",
        json={"department_id": department["id"]},
        headers=officer["headers"],
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["department"]["code"] == "ROADS_TRANSPORT"

    resp = client.post(
        "/api/officer/select-department",
        json={"department_id": other_department["id"]},
        headers=officer["headers"],
    )
    assert resp.status_code == 403


def test_officer_dashboard_counts(client, citizen, officer, department, file_report):
    report = file_report(citizen, department["id"])
    file_report(citizen, department["id"])
    client.patch(
        f"/api/officer/reports/{report['id']}/status",
        json={"status": "in_progress"},
        headers=officer["headers"],
    )

    stats = client.get("/api/officer/dashboard", headers=officer["dept_headers"]).json()["data"]["stats"]
    assert stats["total_reports"] == 2
    assert stats["in_progress_reports"] == 1
    assert stats["my_handled_reports"] == 1
    assert stats["active_emergencies"] == 0
