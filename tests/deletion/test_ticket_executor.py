"""TicketExecutor: due scan, claim lease, already-gone tolerance, single attempt."""
from datetime import timedelta

import pytest

from filegate.core.errors import TransportError
from filegate.models.delivery_ticket import DeliveryTicket
from filegate.services.deletion.executor import COMPLETED, PARTIAL, TicketExecutor

CHAT = 501


@pytest.fixture
def executor(db_session, gateway, clock):
    return TicketExecutor(db_session, gateway, lease_seconds=300, clock=clock)


def _ticket(db_session, clock, ticket_id="t1", message_ids=(11, 12), delay=30, claimed_at=None):
    db_session.add(
        DeliveryTicket(
            id=ticket_id,
            chat_id=CHAT,
            message_ids=list(message_ids),
            delete_at=clock.now + timedelta(seconds=delay),
            claimed_at=claimed_at,
            created_at=clock.now,
        )
    )
    db_session.commit()


def test_not_due_is_left_alone(executor, db_session, clock, gateway):
    _ticket(db_session, clock)
    assert executor.execute("t1") == (None, 0)
    assert executor.run_due().due == 0
    assert gateway.deleted == []
    assert db_session.get(DeliveryTicket, "t1") is not None


def test_due_ticket_deletes_messages_and_row(executor, db_session, clock, gateway):
    _ticket(db_session, clock)
    clock.advance(30)

    assert executor.execute("t1") == (COMPLETED, 2)
    assert gateway.deleted == [(CHAT, 11), (CHAT, 12)]
    assert db_session.query(DeliveryTicket).count() == 0


def test_already_gone_counts_as_done(executor, db_session, clock, gateway):
    gateway.gone.add(11)
    _ticket(db_session, clock)
    clock.advance(31)

    assert executor.execute("t1") == (COMPLETED, 2)
    assert db_session.query(DeliveryTicket).count() == 0


def test_failed_delete_drops_ticket_after_single_attempt(executor, db_session, clock, gateway):
    gateway.delete_results[12] = TransportError("bad gateway")
    _ticket(db_session, clock)
    clock.advance(30)

    assert executor.execute("t1") == (PARTIAL, 1)
    assert db_session.query(DeliveryTicket).count() == 0
    # no second attempt
    assert executor.execute("t1") == (None, 0)
    assert len(gateway.deleted) == 2


def test_claimed_ticket_skipped(executor, db_session, clock, gateway):
    _ticket(db_session, clock, delay=0, claimed_at=clock.now)
    clock.advance(10)
    assert executor.execute("t1") == (None, 0)
    assert gateway.deleted == []


def test_stale_claim_is_reclaimed(executor, db_session, clock, gateway):
    _ticket(db_session, clock, delay=0, claimed_at=clock.now)
    clock.advance(301)
    assert executor.execute("t1") == (COMPLETED, 2)


def test_unknown_ticket(executor):
    assert executor.execute("nope") == (None, 0)


def test_run_due_processes_in_order(executor, db_session, clock, gateway):
    _ticket(db_session, clock, ticket_id="late", message_ids=(3,), delay=20)
    _ticket(db_session, clock, ticket_id="early", message_ids=(1, 2), delay=10)
    _ticket(db_session, clock, ticket_id="future", message_ids=(9,), delay=120)
    clock.advance(25)

    result = executor.run_due()

    assert result.due == 2
    assert result.completed == 2
    assert result.deleted_messages == 3
    assert [m for _, m in gateway.deleted] == [1, 2, 3]
    assert [t.id for t in db_session.query(DeliveryTicket).all()] == ["future"]


def test_run_due_limit(executor, db_session, clock):
    for i in range(3):
        _ticket(db_session, clock, ticket_id=f"t{i}", message_ids=(i,), delay=i)
    clock.advance(60)
    assert executor.run_due(limit=2).completed == 2
    assert db_session.query(DeliveryTicket).count() == 1
