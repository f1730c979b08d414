import pytest

from app.core.errors import InvalidTransitionError
from app.services.status_workflow import EmergencyStatus, ReportStatus, StatusWorkflowEngine


@pytest.mark.parametrize(
    "from_status,to_status",
    [
        ("submitted", "in_progress"),
        ("submitted", "rejected"),
        ("in_progress", "resolved"),
        ("in_progress", "rejected"),
    ],
)
def test_allowed_report_transitions(from_status, to_status):
    assert StatusWorkflowEngine.is_valid_transition(from_status, to_status)


@pytest.mark.parametrize(
    "from_status,to_status",
    [
        ("submitted", "resolved"),
        ("in_progress", "submitted"),
        ("submitted", "submitted"),
        ("resolved", "in_progress"),
        ("rejected", "submitted"),
        ("submitted", "closed"),
        ("archived", "in_progress"),
    ],
)
def test_denied_report_transitions(from_status, to_status):
    assert not StatusWorkflowEngine.is_valid_transition(from_status, to_status)


def test_terminal_report_states_have_no_exits():
    for status in (ReportStatus.RESOLVED, ReportStatus.REJECTED):
        assert StatusWorkflowEngine.is_terminal(status.value)
        assert StatusWorkflowEngine.get_allowed_transitions(status.value) == []
    assert not StatusWorkflowEngine.is_terminal("submitted")


def test_emergency_lifecycle_is_linear():
    chain = [s.value for s in EmergencyStatus]
    for current, following in zip(chain, chain[1:]):
        assert StatusWorkflowEngine.is_valid_emergency_transition(current, following)
        assert StatusWorkflowEngine.get_allowed_emergency_transitions(current) == [following]

    assert not StatusWorkflowEngine.is_valid_emergency_transition("reported", "dispatched")
    assert not StatusWorkflowEngine.is_valid_emergency_transition("received", "received")
    assert StatusWorkflowEngine.is_terminal_emergency("resolved")


def test_validate_and_transition_returns_history_entry():
    entry = StatusWorkflowEngine.validate_and_transition("submitted", "in_progress", "officer-1", "On it")

    assert entry["status"] == "in_progress"
    assert entry["changed_by"] == "officer-1"
    assert entry["remarks"] == "On it"
    assert entry["changed_at"].tzinfo is not None


def test_validate_and_transition_raises_with_allowed_list():
    with pytest.raises(InvalidTransitionError) as exc_info:
        StatusWorkflowEngine.validate_and_transition("submitted", "resolved", "officer-1")

    err = exc_info.value
    assert err.status_code == 400
    assert err.current_status == "submitted"
    assert err.requested_status == "resolved"
    assert err.allowed == ["in_progress", "rejected"]


def test_validate_emergency_transition_rejects_skips():
    with pytest.raises(InvalidTransitionError):
        StatusWorkflowEngine.validate_emergency_transition("resolved", "reported", "officer-1")
