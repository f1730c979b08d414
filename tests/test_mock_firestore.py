from firebase_admin import firestore

from app.config.mock_firestore import MockFirestore


def test_set_get_and_dotted_update():
    store = MockFirestore()
    ref = store.collection("departments").document("d1")
    ref.set({"name": "Sanitation", "stats": {"total_reports": 0}, "created_at": firestore.SERVER_TIMESTAMP})

    ref.update({
        "stats.total_reports": firestore.Increment(2),
        "stats.assigned_officers": firestore.Increment(1),
        "tags": firestore.ArrayUnion(["waste", "drains"]),
    })
    ref.update({"stats.total_reports": firestore.Increment(-1), "tags": firestore.ArrayUnion(["waste"])})

    data = ref.get().to_dict()
    assert data["stats"] == {"total_reports": 1, "assigned_officers": 1}
    assert data["tags"] == ["waste", "drains"]
    assert data["created_at"].tzinfo is not None


def test_delete_field_and_missing_document():
    store = MockFirestore()
    ref = store.collection("users").document("u1")
    ref.set({"email": "a@civicdesk.in", "otp": "1234"})
    ref.update({"otp": firestore.DELETE_FIELD})

    assert "otp" not in ref.get().to_dict()
    assert not store.collection("users").document("nope").get().exists


def test_query_operators():
    store = MockFirestore()
    reports = store.collection("reports")
    reports.document("r1").set({"status": "submitted", "department_id": "d1", "report_id": "RPT-20260101-0001"})
    reports.document("r2").set({"status": "resolved", "department_id": "d2", "report_id": "RPT-20260101-0002"})
    reports.document("r3").set({"status": "submitted", "department_id": "d3", "report_id": "RPT-20260102-0001"})

    def ids(query):
        return sorted(doc.id for doc in query.stream())

    assert ids(reports.where("status", "==", "submitted")) == ["r1", "r3"]
    assert ids(reports.where("department_id", "in", ["d1", "d2"])) == ["r1", "r2"]
    assert ids(reports.where("status", "!=", "submitted")) == ["r2"]
    prefix = "RPT-20260101-"
    assert ids(reports.where("report_id", ">=", prefix).where("report_id", "<", prefix + "\uf8ff")) == ["r1", "r2"]

    newest = reports.order_by("report_id", direction=firestore.Query.DESCENDING).limit(1)
    assert [doc.id for doc in newest.stream()] == ["r3"]


def test_reset_clears_everything():
    store = MockFirestore()
    store.collection("reports").document("r1").set({"status": "submitted"})
    store.reset()
    assert list(store.collection("reports").stream()) == []


def test_file_backed_store_persists(tmp_path):
    path = str(tmp_path / "mock_db.json")
    MockFirestore(path).collection("departments").document("d1").set({"name": "Water Supply"})

    reloaded = MockFirestore(path)
    assert reloaded.collection("departments").document("d1").get().to_dict() == {"name": "Water Supply"}
