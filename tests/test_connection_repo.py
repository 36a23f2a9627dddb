import pytest

from conftest import FakeTable

from partnermatch.errors import ConnectionExists, ConnectionNotFound, SelfConnection
from partnermatch.models import ConnectionRecord
from partnermatch.connection_repo import ConnectionRepo


@pytest.fixture
def repo(fake_table):
    return ConnectionRepo("connections", table=fake_table)


def test_request_creates_pending_record(repo, fake_table):
    rec = repo.request_connection("alice", "bob", message="hi")
    stored = fake_table.items[f"CONNECTION#{rec.id}"]
    assert stored["status"] == "pending"
    assert stored["requesterId"] == "alice"
    assert stored["recipientId"] == "bob"
    assert stored["message"] == "hi"
    assert rec.created_at == rec.updated_at


def test_request_message_is_truncated(repo):
    rec = repo.request_connection("alice", "bob", message="x" * 800)
    assert len(rec.message) == 500


def test_request_to_self_rejected(repo):
    with pytest.raises(SelfConnection):
        repo.request_connection("alice", "alice")


@pytest.mark.parametrize("status, code", [
    ("pending", "REQUEST_PENDING"),
    ("accepted", "ALREADY_CONNECTED"),
    ("declined", "REQUEST_DECLINED"),
])
def test_request_when_pair_already_linked(status, code):
    existing = ConnectionRecord(id="c1", requester_id="bob", recipient_id="alice", status=status)
    repo = ConnectionRepo("connections", table=FakeTable([existing.to_item()]))
    with pytest.raises(ConnectionExists) as exc:
        repo.request_connection("alice", "bob")
    assert exc.value.code == code
    assert exc.value.status == status


def test_recipient_can_accept(repo):
    rec = repo.request_connection("alice", "bob")
    accepted = repo.accept_connection(rec.id, "bob")
    assert accepted.status == "accepted"
    assert repo.get_connection(rec.id).status == "accepted"


def test_recipient_can_decline(repo):
    rec = repo.request_connection("alice", "bob")
    assert repo.decline_connection(rec.id, "bob").status == "declined"


def test_requester_cannot_accept_own_request(repo):
    rec = repo.request_connection("alice", "bob")
    with pytest.raises(ConnectionNotFound):
        repo.accept_connection(rec.id, "alice")
    assert repo.get_connection(rec.id).status == "pending"


def test_resolved_request_cannot_be_resolved_again(repo):
    rec = repo.request_connection("alice", "bob")
    repo.decline_connection(rec.id, "bob")
    with pytest.raises(ConnectionNotFound):
        repo.accept_connection(rec.id, "bob")


def test_unknown_request(repo):
    with pytest.raises(ConnectionNotFound):
        repo.accept_connection("missing", "bob")


def test_list_connections_covers_both_directions():
    items = [
        ConnectionRecord(id="1", requester_id="alice", recipient_id="bob", status="accepted").to_item(),
        ConnectionRecord(id="2", requester_id="carol", recipient_id="alice", status="pending").to_item(),
        ConnectionRecord(id="3", requester_id="bob", recipient_id="carol", status="pending").to_item(),
    ]
    repo = ConnectionRepo("connections", table=FakeTable(items, page_size=1))
    assert sorted(r.id for r in repo.list_connections("alice")) == ["1", "2"]


def test_pending_invitations_newest_first():
    items = [
        ConnectionRecord(id="old", requester_id="a", recipient_id="me", status="pending",
                         created_at="2026-01-01").to_item(),
        ConnectionRecord(id="new", requester_id="b", recipient_id="me", status="pending",
                         created_at="2026-02-01").to_item(),
        ConnectionRecord(id="done", requester_id="c", recipient_id="me", status="accepted",
                         created_at="2026-03-01").to_item(),
        ConnectionRecord(id="sent", requester_id="me", recipient_id="d", status="pending",
                         created_at="2026-04-01").to_item(),
    ]
    repo = ConnectionRepo("connections", table=FakeTable(items))
    assert [r.id for r in repo.list_pending_invitations("me")] == ["new", "old"]
