from partnermatch.connections import index_by_counterparty, latest_connection, resolve_connection_state
from partnermatch.models import ConnectionRecord


def rec(cid, requester, recipient, status, updated="2026-01-01T00:00:00+00:00", created="2026-01-01T00:00:00+00:00"):
    return ConnectionRecord(
        id=cid, requester_id=requester, recipient_id=recipient, status=status,
        created_at=created, updated_at=updated,
    )


def test_no_record_is_none():
    state = resolve_connection_state("me", "them", [rec("1", "me", "other", "pending")])
    assert state.status == "none"
    assert state.connection_id is None
    assert not state.is_pending_sent and not state.is_pending_received


def test_pending_sent_by_current_user():
    state = resolve_connection_state("me", "them", [rec("1", "me", "them", "pending")])
    assert state.status == "pending"
    assert state.is_pending_sent is True
    assert state.is_pending_received is False


def test_pending_received_by_current_user():
    state = resolve_connection_state("me", "them", [rec("1", "them", "me", "pending")])
    assert state.is_pending_sent is False
    assert state.is_pending_received is True


def test_accepted_and_declined_have_no_pending_flags():
    for status in ("accepted", "declined"):
        state = resolve_connection_state("me", "them", [rec("1", "them", "me", status)])
        assert state.status == status
        assert state.connection_id == "1"
        assert not state.is_pending_sent and not state.is_pending_received


def test_most_recently_updated_record_wins():
    records = [
        rec("new", "me", "them", "accepted", updated="2026-03-01T00:00:00+00:00"),
        rec("old", "them", "me", "pending", updated="2026-01-01T00:00:00+00:00"),
    ]
    assert latest_connection("me", "them", records).id == "new"
    assert latest_connection("me", "them", list(reversed(records))).id == "new"


def test_index_by_counterparty_uses_same_tie_break():
    records = [
        rec("a", "me", "x", "declined", updated="2026-01-01T00:00:00+00:00"),
        rec("b", "x", "me", "pending", updated="2026-02-01T00:00:00+00:00"),
        rec("c", "me", "y", "accepted"),
        rec("d", "z", "w", "accepted"),
    ]
    index = index_by_counterparty("me", records)
    assert set(index) == {"x", "y"}
    assert index["x"].id == "b"
