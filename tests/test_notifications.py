from datetime import timedelta

from app.models.notification import NotificationType
from app.services.notification_service import NotificationDispatcher, get_notification_dispatcher
from app.utils.firestore_helpers import utc_now


def _notifications(client, session, **params):
    return client.get("/api/notifications", params=params, headers=session["headers"]).json()["data"]


def _move(client, officer, report_id, status, **extra):
    return client.patch(
        f"/api/officer/reports/{report_id}/status",
        json={"status": status, **extra},
        headers=officer["headers"],
    )


def test_report_transitions_notify_citizen(client, citizen, officer, department, file_report):
    report = file_report(citizen, department["id"])
    _move(client, officer, report["id"], "in_progress")
    _move(client, officer, report["id"], "resolved")

    data = _notifications(client, citizen)
    assert data["unread_count"] == 2
    types = {n["type"] for n in data["notifications"]}
    assert types == {"report_status_update", "report_resolved"}

    resolved = next(n for n in data["notifications"] if n["type"] == "report_resolved")
    assert resolved["priority"] == "high"
    assert resolved["related_entity"] == {"entity_type": "report", "entity_id": report["id"]}
    assert resolved["metadata"] == {"old_status": "in_progress", "new_status": "resolved"}
    assert report["report_id"] in resolved["message"]


def test_rejection_notifies_with_reason(client, citizen, officer, department, file_report):
    report = file_report(citizen, department["id"])
    client.post(
        f"/api/officer/reports/{report['id']}/reject",
        json={"reason": "Not a municipal issue"},
        headers=officer["headers"],
    )

    notes = _notifications(client, citizen)["notifications"]
    assert [n["type"] for n in notes] == ["report_rejected"]
    assert "Not a municipal issue" in notes[0]["message"]


def test_failed_dispatch_does_not_undo_status_change(
    client, citizen, officer, department, file_report, monkeypatch, caplog
):
    report = file_report(citizen, department["id"])

    def broken_write(self, notification):
        raise RuntimeError("notification store unavailable")

    monkeypatch.setattr(NotificationDispatcher, "_write", broken_write)

    resp = _move(client, officer, report["id"], "in_progress")
    assert resp.status_code == 200
    assert resp.json()["data"]["report"]["status"] == "in_progress"
    assert "notification store unavailable" in caplog.text

    monkeypatch.undo()
    assert _notifications(client, citizen)["notifications"] == []


def test_dispatch_without_recipient_is_skipped():
    assert get_notification_dispatcher().dispatch(None, NotificationType.GENERAL, "Hi", "Hello") is None


def test_read_unread_and_read_all(client, citizen, officer, department, file_report):
    report = file_report(citizen, department["id"])
    _move(client, officer, report["id"], "in_progress")
    _move(client, officer, report["id"], "resolved")
    first, second = _notifications(client, citizen)["notifications"]

    resp = client.patch(f"/api/notifications/{first['id']}/read", headers=citizen["headers"])
    assert resp.json()["data"]["notification"]["is_read"] is True
    assert resp.json()["data"]["notification"]["read_at"] is not None
    count = client.get("/api/notifications/unread-count", headers=citizen["headers"]).json()["data"]
    assert count == {"unread_count": 1}

    unread_only = _notifications(client, citizen, is_read="false")["notifications"]
    assert [n["id"] for n in unread_only] == [second["id"]]

    resp = client.patch(f"/api/notifications/{first['id']}/unread", headers=citizen["headers"])
    assert resp.json()["data"]["notification"]["read_at"] is None

    resp = client.patch("/api/notifications/read-all", headers=citizen["headers"])
    assert resp.json()["data"] == {"updated": 2}
    assert _notifications(client, citizen)["unread_count"] == 0


def test_notifications_are_private(client, citizen, other_citizen, officer, department, file_report):
    report = file_report(citizen, department["id"])
    _move(client, officer, report["id"], "in_progress")
    note = _notifications(client, citizen)["notifications"][0]

    assert client.patch(f"/api/notifications/{note['id']}/read", headers=other_citizen["headers"]).status_code == 404
    assert client.delete(f"/api/notifications/{note['id']}", headers=other_citizen["headers"]).status_code == 404
    assert _notifications(client, other_citizen)["notifications"] == []


def test_delete_is_soft_and_hides_notification(client, db, citizen, officer, department, file_report):
    report = file_report(citizen, department["id"])
    _move(client, officer, report["id"], "in_progress")
    note = _notifications(client, citizen)["notifications"][0]

    assert client.delete(f"/api/notifications/{note['id']}", headers=citizen["headers"]).status_code == 200
    assert _notifications(client, citizen)["notifications"] == []
    assert client.patch(f"/api/notifications/{note['id']}/read", headers=citizen["headers"]).status_code == 404

    stored = db.collection("notifications").document(note["id"]).get().to_dict()
    assert stored["is_deleted"] is True


def test_expired_notifications_are_hidden(client, db, citizen):
    dispatcher = get_notification_dispatcher()
    live_id = dispatcher.dispatch(citizen["id"], NotificationType.GENERAL, "Water cut", "Tomorrow 10-2")
    expired_id = dispatcher.dispatch(citizen["id"], NotificationType.GENERAL, "Old news", "Last month")
    db.collection("notifications").document(expired_id).update({"expires_at": utc_now() - timedelta(minutes=1)})

    data = _notifications(client, citizen)
    assert [n["id"] for n in data["notifications"]] == [live_id]
    assert data["unread_count"] == 1
    assert client.patch(f"/api/notifications/{expired_id}/read", headers=citizen["headers"]).status_code == 404


def test_new_notifications_expire_after_ttl(db, citizen):
    notification_id = get_notification_dispatcher().dispatch(
        citizen["id"], NotificationType.GENERAL, "Hello", "Welcome"
    )
    stored = db.collection("notifications").document(notification_id).get().to_dict()
    assert stored["expires_at"] - stored["created_at"] == timedelta(days=30)
