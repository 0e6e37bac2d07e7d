from __future__ import annotations

import pytest

from app.domain import Citation, SignalOutcome
from app.models import SignalRecord
from app.repositories import SignalRepository


def test_insert_normalizes_author_and_forces_pending(db_session, make_signal) -> None:
    repo = SignalRepository(db_session)
    stored = repo.insert(
        make_signal(
            author_address="  0xABC ",
            outcome=SignalOutcome.WIN,
            resolved_at=123,
            citations=[Citation(title="NWS", url="https://weather.gov", snippet="snow")],
        )
    )

    assert stored.author_address == "0xabc"
    assert stored.outcome is SignalOutcome.PENDING
    assert stored.resolved_at is None
    assert stored.citations[0].url == "https://weather.gov"


def test_set_outcome_only_transitions_pending_rows(db_session, make_signal) -> None:
    repo = SignalRepository(db_session)
    signal = repo.insert(make_signal())

    assert repo.set_outcome(signal.id, SignalOutcome.WIN, 1_760_000_500) is True
    assert repo.set_outcome(signal.id, SignalOutcome.LOSS, 1_760_000_900) is False

    stored = repo.get(signal.id)
    assert stored.outcome is SignalOutcome.WIN
    assert stored.resolved_at == 1_760_000_500


def test_set_outcome_rejects_pending_target(db_session, make_signal) -> None:
    repo = SignalRepository(db_session)
    signal = repo.insert(make_signal())

    with pytest.raises(ValueError):
        repo.set_outcome(signal.id, SignalOutcome.PENDING, 1)


def test_set_outcome_on_missing_row_returns_false(db_session) -> None:
    assert SignalRepository(db_session).set_outcome("missing", SignalOutcome.WIN, 1) is False


def test_queries_filter_and_order(db_session, make_signal) -> None:
    repo = SignalRepository(db_session)
    older = repo.insert(make_signal(timestamp=100))
    newer = repo.insert(make_signal(timestamp=200))
    other = repo.insert(make_signal(timestamp=150, author_address="0xdef", event_id="777"))
    repo.set_outcome(older.id, SignalOutcome.LOSS, 500)
    repo.set_outcome(newer.id, SignalOutcome.WIN, 400)

    assert [s.id for s in repo.get_by_author("0xABC")] == [newer.id, older.id]
    assert [s.id for s in repo.get_by_event("777")] == [other.id]
    assert [s.id for s in repo.get_pending()] == [other.id]
    assert [s.id for s in repo.get_resolved_by_author("0xabc")] == [older.id, newer.id]
    assert repo.list_authors() == ["0xabc", "0xdef"]


def test_get_pending_respects_limit_and_event(db_session, make_signal) -> None:
    repo = SignalRepository(db_session)
    first = repo.insert(make_signal(timestamp=1))
    repo.insert(make_signal(timestamp=2))
    scoped = repo.insert(make_signal(timestamp=3, event_id="999"))

    assert [s.id for s in repo.get_pending(1)] == [first.id]
    assert [s.id for s in repo.get_pending(event_id="999")] == [scoped.id]


def test_legacy_outcome_values_are_read_canonically(db_session, make_signal) -> None:
    repo = SignalRepository(db_session)
    signal = repo.insert(make_signal())
    record = db_session.get(SignalRecord, signal.id)
    record.outcome = "CORRECT"
    record.resolved_at = 42
    db_session.flush()

    assert repo.get(signal.id).outcome is SignalOutcome.WIN
    assert [s.id for s in repo.get_resolved_by_author("0xabc")] == [signal.id]


def test_add_tip_accumulates(db_session, make_signal) -> None:
    repo = SignalRepository(db_session)
    signal = repo.insert(make_signal())

    repo.add_tip(signal.id, 10_000_000)
    updated = repo.add_tip(signal.id, 5_000_000)

    assert updated.total_tips == pytest.approx(15_000_000)
    assert repo.add_tip("missing", 1) is None
