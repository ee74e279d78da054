"""Tests for SettlePositionsJob."""

import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from settleboard.events.publisher import InMemoryPublisher
from settleboard.jobs.settle_positions import SettlePositionsJob
from settleboard.settlement.dispatcher import StrategyDispatcher
from settleboard.settlement.types import PositionRecord, SportEventOutcome
from settleboard.shared.enums import CreatorType, EventStatus, PositionOutcome, PositionStatus
from settleboard.shared.errors import ExpertNotFoundError

NOW = datetime(2026, 3, 1, 20, 0, tzinfo=timezone.utc)


class FakePositionStore:
    """Pending-only selection and a guarded update, like the SQL store."""

    def __init__(self, positions, outbox_failures=0):
        self.rows = {p.id: p for p in positions}
        self.outbox = {}
        self.apply_calls = 0
        self.outbox_failures = outbox_failures

    async def list_pending_positions(self, event_ids):
        return [
            p for p in self.rows.values()
            if p.event_id in event_ids and p.status is PositionStatus.PENDING
        ]

    async def apply_settlements(self, decisions, events=None):
        """All transitions and outbox rows commit together or not at all."""
        self.apply_calls += 1
        rows = dict(self.rows)
        outbox = dict(self.outbox)
        applied = []
        for d in decisions:
            current = rows[d.position.id]
            if current.status is PositionStatus.PENDING:
                rows[d.position.id] = replace(
                    current, status=d.status, outcome=d.outcome, settled_at=d.settled_at
                )
                applied.append(d)
                event = (events or {}).get(d.position.id)
                if event is not None:
                    if self.outbox_failures:
                        self.outbox_failures -= 1
                        raise ConnectionError("outbox insert failed")
                    outbox.setdefault(event.event_id, event)
        self.rows, self.outbox = rows, outbox
        return applied

    async def list_positions_for_creator(self, creator_id):
        return [p for p in self.rows.values() if p.creator_id == creator_id]


def outcome(event_id="e1", score="2-1", winner="home", minutes_ago=2):
    return SportEventOutcome(
        event_id=event_id,
        settled_at=NOW - timedelta(minutes=minutes_ago),
        final_score=score,
        winner=winner,
    )


def position(position_id, event_id="e1", market="Match Result", selection="Home", expert_id=None, creator_type=CreatorType.USER):
    return PositionRecord(
        id=position_id,
        creator_id=f"user-{position_id}",
        creator_type=creator_type,
        event_id=event_id,
        market=market,
        selection=selection,
        odds=Decimal("2.00"),
        expert_id=expert_id,
    )


def make_job(outcomes, store, *, statistics=None, experts=None, dispatcher=None, publisher=None):
    source = MagicMock()
    source.list_outcomes_settled_between = AsyncMock(return_value=outcomes)
    if experts is None:
        experts = MagicMock()
        experts.expert_id_for_user = AsyncMock(return_value=None)
    if statistics is None:
        statistics = MagicMock()
        statistics.recalculate = AsyncMock()
    db = MagicMock()
    db.write = AsyncMock(return_value=1)
    return SettlePositionsJob(
        db,
        logging.getLogger("test.settle"),
        outcomes=source,
        positions=store,
        experts=experts,
        publisher=publisher or InMemoryPublisher(),
        statistics=statistics,
        dispatcher=dispatcher,
        clock=lambda: NOW,
    )


class TestSettlementRun:
    @pytest.mark.asyncio
    async def test_settles_pending_positions(self):
        store = FakePositionStore([
            position("p1", selection="Home"),
            position("p2", selection="Away"),
            position("p3", market="Total Goals", selection="Over 2.5"),
            position("p4", market="Corners", selection="Over 9.5"),
        ])
        job = make_job([outcome()], store)

        report = await job.run()

        assert report.settled == 4
        assert store.rows["p1"].outcome is PositionOutcome.WON
        assert store.rows["p2"].outcome is PositionOutcome.LOST
        assert store.rows["p3"].outcome is PositionOutcome.WON
        assert store.rows["p4"].outcome is PositionOutcome.VOID
        assert store.rows["p1"].settled_at == NOW
        assert report.by_outcome == {"won": 2, "lost": 1, "void": 1}
        assert report.events_published == 4

    @pytest.mark.asyncio
    async def test_no_outcomes_is_a_no_op(self):
        store = FakePositionStore([position("p1")])
        report = await make_job([], store).run()

        assert report.outcomes_found == 0
        assert store.apply_calls == 0
        assert store.rows["p1"].status is PositionStatus.PENDING

    @pytest.mark.asyncio
    async def test_rerun_settles_nothing_new(self):
        """A second run over the same window finds nothing pending."""
        store = FakePositionStore([position("p1"), position("p2", selection="Draw")])
        publisher = InMemoryPublisher()
        job = make_job([outcome()], store, publisher=publisher)

        first = await job.run()
        second = await job.run()

        assert first.settled == 2
        assert second.candidates == 0
        assert second.settled == 0
        assert len(publisher.events) == 2

    @pytest.mark.asyncio
    async def test_positions_without_outcome_stay_pending(self):
        store = FakePositionStore([position("p1"), position("p2", event_id="e2")])
        report = await make_job([outcome("e1")], store).run()

        assert report.settled == 1
        assert store.rows["p2"].status is PositionStatus.PENDING

    @pytest.mark.asyncio
    async def test_latest_outcome_wins(self):
        store = FakePositionStore([position("p1", selection="Home")])
        outcomes = [
            outcome(score="0-1", winner="away", minutes_ago=1),
            outcome(score="2-1", winner="home", minutes_ago=5),
        ]
        await make_job(outcomes, store).run()
        assert store.rows["p1"].outcome is PositionOutcome.LOST

    @pytest.mark.asyncio
    async def test_cancelled_event_voids_positions(self):
        store = FakePositionStore([position("p1", selection="Home")])
        cancelled = SportEventOutcome(
            event_id="e1",
            settled_at=NOW - timedelta(minutes=1),
            final_score="2-1",
            winner="home",
            event_status=EventStatus.CANCELLED,
        )
        await make_job([cancelled], store).run()
        assert store.rows["p1"].outcome is PositionOutcome.VOID


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_one_failing_position_does_not_block_others(self):
        real = StrategyDispatcher()

        def determine(market, selection, result):
            if selection == "boom":
                raise RuntimeError("strategy exploded")
            return real.determine(market, selection, result)

        dispatcher = MagicMock()
        dispatcher.determine = MagicMock(side_effect=determine)
        store = FakePositionStore([position("p1"), position("p2", selection="boom"), position("p3")])

        report = await make_job([outcome()], store, dispatcher=dispatcher).run()

        assert report.settled == 2
        assert [f.position_id for f in report.failures] == ["p2"]
        assert store.rows["p2"].status is PositionStatus.PENDING

    @pytest.mark.asyncio
    async def test_persistence_error_propagates(self):
        store = FakePositionStore([position("p1")])
        store.apply_settlements = AsyncMock(side_effect=RuntimeError("db down"))
        job = make_job([outcome()], store)

        with pytest.raises(RuntimeError, match="db down"):
            await job.run()

    @pytest.mark.asyncio
    async def test_expert_failures_are_isolated(self):
        store = FakePositionStore([
            position("p1", expert_id="x1", creator_type=CreatorType.EXPERT),
            position("p2", expert_id="x2", creator_type=CreatorType.EXPERT),
            position("p3", expert_id="x3", creator_type=CreatorType.EXPERT),
        ])
        statistics = MagicMock()

        async def recalculate(expert_id):
            if expert_id == "x1":
                raise ExpertNotFoundError(expert_id)
            if expert_id == "x2":
                raise RuntimeError("stats store down")

        statistics.recalculate = AsyncMock(side_effect=recalculate)

        report = await make_job([outcome()], store, statistics=statistics).run()

        assert report.settled == 3
        assert report.experts_recalculated == 1
        assert report.experts_failed == 2


class TestExperts:
    @pytest.mark.asyncio
    async def test_each_expert_recalculated_once(self):
        store = FakePositionStore([
            position("p1", expert_id="x1", creator_type=CreatorType.EXPERT),
            position("p2", expert_id="x1", creator_type=CreatorType.EXPERT, selection="Draw"),
            position("p3"),
        ])
        statistics = MagicMock()
        statistics.recalculate = AsyncMock()

        await make_job([outcome()], store, statistics=statistics).run()

        statistics.recalculate.assert_awaited_once_with("x1")

    @pytest.mark.asyncio
    async def test_expert_resolved_from_user(self):
        store = FakePositionStore([position("p1", creator_type=CreatorType.EXPERT)])
        experts = MagicMock()
        experts.expert_id_for_user = AsyncMock(return_value="x7")
        statistics = MagicMock()
        statistics.recalculate = AsyncMock()
        publisher = InMemoryPublisher()

        await make_job([outcome()], store, experts=experts, statistics=statistics, publisher=publisher).run()

        experts.expert_id_for_user.assert_awaited_once_with("user-p1")
        statistics.recalculate.assert_awaited_once_with("x7")
        assert publisher.events[0].expert_id == "x7"

    @pytest.mark.asyncio
    async def test_users_are_not_recalculated(self):
        store = FakePositionStore([position("p1")])
        statistics = MagicMock()
        statistics.recalculate = AsyncMock()

        await make_job([outcome()], store, statistics=statistics).run()

        statistics.recalculate.assert_not_awaited()


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_keeps_decisions_made_so_far(self):
        store = FakePositionStore([position("p1"), position("p2"), position("p3")])
        real = StrategyDispatcher()
        job = None

        def determine(market, selection, result):
            job.cancel()
            return real.determine(market, selection, result)

        dispatcher = MagicMock()
        dispatcher.determine = MagicMock(side_effect=determine)
        job = make_job([outcome()], store, dispatcher=dispatcher)

        report = await job.run()

        assert report.cancelled is True
        assert report.settled == 1
        assert store.rows["p1"].status is PositionStatus.WON
        assert store.rows["p2"].status is PositionStatus.PENDING


class TestAtomicOutbox:
    @pytest.mark.asyncio
    async def test_outbox_rows_written_with_transitions(self):
        store = FakePositionStore([position("p1"), position("p2", selection="Away")])
        publisher = InMemoryPublisher()

        report = await make_job([outcome()], store, publisher=publisher).run()

        assert report.events_published == 2
        assert sorted(e.position_id for e in store.outbox.values()) == ["p1", "p2"]
        assert sorted(e.event_id for e in publisher.events) == sorted(store.outbox)

    @pytest.mark.asyncio
    async def test_failed_outbox_write_leaves_positions_pending(self):
        """A failed event write rolls the transition back, so the next run settles and emits it."""
        store = FakePositionStore([position("p1")], outbox_failures=1)
        publisher = InMemoryPublisher()
        job = make_job([outcome()], store, publisher=publisher)

        with pytest.raises(ConnectionError):
            await job.run()

        assert store.rows["p1"].status is PositionStatus.PENDING
        assert store.outbox == {}
        assert publisher.events == []

        report = await job.run()

        assert report.settled == 1
        assert store.rows["p1"].status is PositionStatus.WON
        assert [e.position_id for e in store.outbox.values()] == ["p1"]
        assert len(publisher.events) == 1

    @pytest.mark.asyncio
    async def test_expert_lookup_failure_is_retried(self):
        """A failed expert lookup aborts before commit; the retry recalculates the expert."""
        store = FakePositionStore([position("p1", creator_type=CreatorType.EXPERT)])
        experts = MagicMock()
        experts.expert_id_for_user = AsyncMock(side_effect=[ConnectionError("directory down"), "x1"])
        statistics = MagicMock()
        statistics.recalculate = AsyncMock()
        job = make_job([outcome()], store, experts=experts, statistics=statistics)

        with pytest.raises(ConnectionError):
            await job.run()

        assert store.apply_calls == 0
        assert store.rows["p1"].status is PositionStatus.PENDING

        report = await job.run()

        assert report.settled == 1
        statistics.recalculate.assert_awaited_once_with("x1")
        assert next(iter(store.outbox.values())).expert_id == "x1"
