import re

from app.core.errors import ErrorMessages
from app.core.settings import settings
from app.services.department_service import get_department_service
from app.services.report_service import ReportService, get_report_service

from conftest import report_payload


def _stats(department_id):
    return get_department_service().get_stats(department_id)["stats"]


def _set_status(client, officer, report_id, status, **extra):
    return client.patch(
        f"/api/officer/reports/{report_id}/status",
        json={"status": status, **extra},
        headers=officer["headers"],
    )


def test_create_report(client, citizen, department, file_report):
    report = file_report(citizen, department["id"])

    assert re.fullmatch(r"RPT-\d{8}-0001", report["report_id"])
    assert report["status"] == "submitted"
    assert report["citizen_id"] == citizen["id"]
    assert report["media_count"] == 1
    assert report["media"]["images"][0]["public_id"] == "pothole.jpg"
    assert report["days_since_submission"] == 0
    assert [h["status"] for h in report["status_history"]] == ["submitted"]
    assert "is_deleted" not in report

    stats = _stats(department["id"])
    assert stats["total_reports"] == 1
    assert stats["active_reports"] == 1


def test_report_ids_increment_within_a_day(citizen, department, file_report):
    first = file_report(citizen, department["id"])
    second = file_report(citizen, department["id"])

    assert first["report_id"].endswith("-0001")
    assert second["report_id"].endswith("-0002")
    assert first["report_id"][:13] == second["report_id"][:13]


def test_create_report_requires_image(client, citizen, department):
    resp = client.post(
        "/api/citizen/reports",
        json=report_payload(department["id"], media={"images": []}),
        headers=citizen["headers"],
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == ErrorMessages.MEDIA_REQUIRED


def test_create_report_rejects_invalid_coordinates(client, citizen, department):
    resp = client.post(
        "/api/citizen/reports",
        json=report_payload(department["id"], location={"type": "Point", "coordinates": [200.0, 19.9]}),
        headers=citizen["headers"],
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == ErrorMessages.INVALID_COORDINATES


def test_create_report_for_unknown_or_inactive_department(client, admin, citizen, department):
    resp = client.post("/api/citizen/reports", json=report_payload("missing"), headers=citizen["headers"])
    assert resp.status_code == 404

    client.patch(f"/api/departments/{department['id']}/toggle-status", headers=admin["headers"])
    resp = client.post("/api/citizen/reports", json=report_payload(department["id"]), headers=citizen["headers"])
    assert resp.status_code == 403
    assert resp.json()["message"] == ErrorMessages.DEPARTMENT_INACTIVE


def test_only_citizens_file_reports(client, officer, department):
    resp = client.post("/api/citizen/reports", json=report_payload(department["id"]), headers=officer["headers"])
    assert resp.status_code == 403


def test_rate_limit(client, citizen, department, file_report, monkeypatch):
    monkeypatch.setattr(settings, "REPORT_RATE_LIMIT_PER_HOUR", 2)
    file_report(citizen, department["id"])
    file_report(citizen, department["id"])

    resp = client.post("/api/citizen/reports", json=report_payload(department["id"]), headers=citizen["headers"])
    assert resp.status_code == 429
    assert resp.json()["message"] == ErrorMessages.REPORT_RATE_LIMITED


def test_full_lifecycle_to_resolved(client, citizen, officer, department, file_report):
    report = file_report(citizen, department["id"])

    resp = _set_status(client, officer, report["id"], "in_progress", remarks="Crew assigned")
    assert resp.status_code == 200
    updated = resp.json()["data"]["report"]
    assert updated["status"] == "in_progress"
    assert updated["assigned_officer_id"] == officer["id"]
    assert len(updated["status_history"]) == 2
    assert updated["status_history"][-1]["changed_by"] == officer["id"]
    assert updated["status_history"][-1]["remarks"] == "Crew assigned"

    resp = _set_status(client, officer, report["id"], "resolved", resolution_notes="Patched with asphalt")
    resolved = resp.json()["data"]["report"]
    assert resolved["status"] == "resolved"
    assert resolved["resolved_at"] is not None
    assert resolved["resolution_notes"] == "Patched with asphalt"
    assert [h["status"] for h in resolved["status_history"]] == ["submitted", "in_progress", "resolved"]

    stats = _stats(department["id"])
    assert stats["active_reports"] == 0
    assert stats["resolved_reports"] == 1


def test_invalid_transitions_are_refused(client, citizen, officer, department, file_report):
    report = file_report(citizen, department["id"])

    for status in ("resolved", "submitted", "closed"):
        resp = _set_status(client, officer, report["id"], status)
        assert resp.status_code == 400
        assert resp.json()["message"] == ErrorMessages.INVALID_STATUS_TRANSITION

    stored = client.get(f"/api/officer/reports/{report['id']}", headers=officer["headers"]).json()["data"]["report"]
    assert stored["status"] == "submitted"
    assert len(stored["status_history"]) == 1


def test_resolved_is_terminal(client, citizen, officer, department, file_report):
    report = file_report(citizen, department["id"])
    _set_status(client, officer, report["id"], "in_progress")
    _set_status(client, officer, report["id"], "resolved")

    assert _set_status(client, officer, report["id"], "in_progress").status_code == 400
    resp = client.post(
        f"/api/officer/reports/{report['id']}/reject",
        json={"reason": "Duplicate of an older report"},
        headers=officer["headers"],
    )
    assert resp.status_code == 400


def test_reject_requires_reason_length(client, citizen, officer, department, file_report):
    report = file_report(citizen, department["id"])

    for reason in (None, "   too short   ", "x" * 501):
        resp = client.post(
            f"/api/officer/reports/{report['id']}/reject",
            json={"reason": reason},
            headers=officer["headers"],
        )
        assert resp.status_code == 400


def test_reject_checks_report_before_reason(client, citizen, officer, other_department, file_report):
    resp = client.post("/api/officer/reports/missing/reject", json={"reason": "short"}, headers=officer["headers"])
    assert resp.status_code == 404

    foreign = file_report(citizen, other_department["id"])
    resp = client.post(
        f"/api/officer/reports/{foreign['id']}/reject",
        json={"reason": "short"},
        headers=officer["headers"],
    )
    assert resp.status_code == 403


def test_reject_report(client, citizen, officer, department, file_report):
    report = file_report(citizen, department["id"])

    resp = client.post(
        f"/api/officer/reports/{report['id']}/reject",
        json={"reason": "  Location is outside city limits  "},
        headers=officer["headers"],
    )
    assert resp.status_code == 200
    rejected = resp.json()["data"]["report"]
    assert rejected["status"] == "rejected"
    assert rejected["rejection_reason"] == "Location is outside city limits"
    assert rejected["rejected_by"] == officer["id"]
    assert rejected["rejected_at"] is not None
    assert rejected["status_history"][-1]["remarks"] == "Location is outside city limits"
    assert _stats(department["id"])["active_reports"] == 0

    assert _set_status(client, officer, report["id"], "in_progress").status_code == 400


def test_rejected_via_status_endpoint_uses_remarks_as_reason(client, citizen, officer, department, file_report):
    report = file_report(citizen, department["id"])

    short = _set_status(client, officer, report["id"], "rejected", remarks="nope")
    assert short.status_code == 400

    resp = _set_status(client, officer, report["id"], "rejected", remarks="Already fixed last week")
    assert resp.status_code == 200
    assert resp.json()["data"]["report"]["rejection_reason"] == "Already fixed last week"


def test_citizen_list_search_and_pagination(client, citizen, other_citizen, department, file_report):
    file_report(citizen, department["id"], title="Broken streetlight on FC Road")
    file_report(citizen, department["id"])
    file_report(citizen, department["id"])
    file_report(other_citizen, department["id"])

    resp = client.get("/api/citizen/reports", params={"limit": 2}, headers=citizen["headers"])
    data = resp.json()["data"]
    assert len(data["reports"]) == 2
    assert data["pagination"] == {
        "total": 3,
        "page": 1,
        "limit": 2,
        "total_pages": 2,
        "has_next_page": True,
        "has_previous_page": False,
    }
    assert all(r["citizen_id"] == citizen["id"] for r in data["reports"])

    resp = client.get("/api/citizen/reports", params={"search": "streetlight"}, headers=citizen["headers"])
    reports = resp.json()["data"]["reports"]
    assert [r["title"] for r in reports] == ["Broken streetlight on FC Road"]


def test_list_sorted_by_report_id(client, citizen, department, file_report):
    for _ in range(3):
        file_report(citizen, department["id"])

    resp = client.get(
        "/api/reports",
        params={"sort_by": "report_id", "sort_order": "asc"},
        headers=citizen["headers"],
    )
    ids = [r["report_id"] for r in resp.json()["data"]["reports"]]
    assert ids == sorted(ids)


def test_status_filter(client, citizen, officer, department, file_report):
    first = file_report(citizen, department["id"])
    file_report(citizen, department["id"])
    _set_status(client, officer, first["id"], "in_progress")

    resp = client.get("/api/officer/reports", params={"status": "in_progress"}, headers=officer["dept_headers"])
    reports = resp.json()["data"]["reports"]
    assert [r["id"] for r in reports] == [first["id"]]


def test_statistics(client, admin, citizen, officer, department, other_department, file_report):
    first = file_report(citizen, department["id"])
    file_report(citizen, department["id"])
    file_report(citizen, other_department["id"])
    _set_status(client, officer, first["id"], "in_progress")

    resp = client.get("/api/reports/statistics", headers=admin["headers"])
    data = resp.json()["data"]
    assert data["total"] == 3
    assert data["by_status"] == {"submitted": 2, "in_progress": 1, "resolved": 0, "rejected": 0}
    assert data["by_department"][0] == {
        "department_id": department["id"],
        "name": "Roads & Transport",
        "code": "ROADS_TRANSPORT",
        "count": 2,
    }

    officer_view = client.get("/api/reports/statistics", headers=officer["headers"]).json()["data"]
    assert officer_view["total"] == 2

    assert client.get("/api/reports/statistics", headers=citizen["headers"]).status_code == 403


def test_nearby(client, citizen, other_citizen, department, file_report):
    near = file_report(citizen, department["id"])
    file_report(
        other_citizen,
        department["id"],
        location={"type": "Point", "coordinates": [72.8777, 19.0760], "address": "Mumbai"},
    )

    resp = client.get(
        "/api/reports/nearby",
        params={"lat": 19.9980, "lng": 73.7900, "radius": 2000},
        headers=citizen["headers"],
    )
    data = resp.json()["data"]
    assert data["count"] == 1
    hit = data["reports"][0]
    assert hit["id"] == near["id"]
    assert 0 < hit["distance_meters"] < 2000
    assert "citizen_id" not in hit
    assert "status_history" not in hit


def test_nearby_validates_input(client, citizen):
    resp = client.get("/api/reports/nearby", params={"lat": 95, "lng": 73.79}, headers=citizen["headers"])
    assert resp.status_code == 400

    resp = client.get("/api/reports/nearby", params={"lat": 19.9, "lng": 73.79, "radius": 0}, headers=citizen["headers"])
    assert resp.status_code == 400


def test_missing_report(client, admin):
    resp = client.get("/api/reports/does-not-exist", headers=admin["headers"])
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": ErrorMessages.REPORT_NOT_FOUND}


def test_citizen_dashboard(client, citizen, officer, department, file_report):
    report = file_report(citizen, department["id"])
    file_report(citizen, department["id"])
    _set_status(client, officer, report["id"], "in_progress")

    data = client.get("/api/citizen/dashboard", headers=citizen["headers"]).json()["data"]
    assert data["stats"]["total_reports"] == 2
    assert data["stats"]["submitted_reports"] == 1
    assert data["stats"]["in_progress_reports"] == 1
    assert len(data["recent_reports"]) == 2


def test_list_sorted_by_priority_rank(client, citizen, department, file_report):
    for priority in ("medium", "critical", "low", "high"):
        file_report(citizen, department["id"], priority=priority)

    resp = client.get("/api/reports", params={"sort_by": "priority"}, headers=citizen["headers"])
    assert [r["priority"] for r in resp.json()["data"]["reports"]] == ["critical", "high", "medium", "low"]

    resp = client.get(
        "/api/reports",
        params={"sort_by": "priority", "sort_order": "asc"},
        headers=citizen["headers"],
    )
    assert [r["priority"] for r in resp.json()["data"]["reports"]] == ["low", "medium", "high", "critical"]


def test_status_history_keeps_entries_from_overlapping_updates(
    client, citizen, officer, department, file_report, monkeypatch
):
    report = file_report(citizen, department["id"])
    stale = get_report_service()._load(report["id"])

    resp = _set_status(client, officer, report["id"], "in_progress", remarks="First crew")
    assert resp.status_code == 200

    # second update works from the snapshot read before the first one landed
    real_load = ReportService._load
    served = []

    def load_once_stale(self, report_id):
        if not served:
            served.append(report_id)
            return stale
        return real_load(self, report_id)

    monkeypatch.setattr(ReportService, "_load", load_once_stale)
    resp = _set_status(client, officer, report["id"], "in_progress", remarks="Second crew")
    assert resp.status_code == 200

    history = resp.json()["data"]["report"]["status_history"]
    assert [h["remarks"] for h in history] == ["Report submitted", "First crew", "Second crew"]
