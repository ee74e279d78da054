"""Settle pending positions against newly available event outcomes.

One run:
1. load outcomes settled inside the lookback window
2. load Pending positions on those events
3. classify each position (parse + dispatch), pure and per position
4. persist every transition and its PositionSettled outbox row in one
   transaction
5. journal the committed events
6. recalculate statistics once per affected expert

Only Pending positions are ever candidates, so a rerun over the same window
finds nothing left to do for positions it already settled.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from settleboard.config.settlement_params import SettlementParams, get_settlement_params
from settleboard.database.repository import ExpertDirectory, OutcomeSource, PositionStore
from settleboard.events.publisher import EventPublisher
from settleboard.events.settlement_events import PositionSettled
from settleboard.settlement.dispatcher import StrategyDispatcher, settle_selection
from settleboard.settlement.score_parser import ResultParser
from settleboard.settlement.types import (
    PositionRecord,
    SettlementDecision,
    SettlementFailure,
    SettlementRunReport,
    SportEventOutcome,
)
from settleboard.shared.enums import PositionStatus
from settleboard.shared.errors import ExpertNotFoundError

from .base import BatchJob


class SettlePositionsJob(BatchJob):
    JOB_ID = "settle_positions_v1"

    def __init__(
        self,
        db: Any,
        logger: logging.Logger,
        *,
        outcomes: OutcomeSource,
        positions: PositionStore,
        experts: ExpertDirectory,
        publisher: EventPublisher,
        statistics: Any,
        parser: Optional[ResultParser] = None,
        dispatcher: Optional[StrategyDispatcher] = None,
        params: Optional[SettlementParams] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        cancel_event: Optional[asyncio.Event] = None,
        job_id_override: str | None = None,
    ):
        super().__init__(db, logger, job_id_override=job_id_override)
        self.outcomes = outcomes
        self.positions = positions
        self.experts = experts
        self.publisher = publisher
        self.statistics = statistics
        self.parser = parser or ResultParser()
        self.dispatcher = dispatcher or StrategyDispatcher()
        self.params = params or get_settlement_params()
        self.clock = clock
        self.cancel_event = cancel_event

    def cancel(self) -> None:
        """Stop after the position currently being classified."""
        if self.cancel_event is None:
            self.cancel_event = asyncio.Event()
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    async def execute(self) -> SettlementRunReport:
        report = SettlementRunReport()
        now = self.clock()
        window_start = now - timedelta(minutes=self.params.lookback.outcome_lookback_minutes)

        outcomes = await self.outcomes.list_outcomes_settled_between(window_start, now)
        report.outcomes_found = len(outcomes)
        if not outcomes:
            self.logger.debug("No event outcomes in the lookback window")
            return report

        by_event = _latest_by_event(outcomes)
        candidates = await self.positions.list_pending_positions(sorted(by_event))
        report.candidates = len(candidates)
        self.items_total = len(candidates)

        decisions = self._classify(candidates, by_event, now, report)

        # Lookup and persistence errors propagate before anything is
        # committed, so a retry sees the same Pending positions.
        experts_by_position = await self._resolve_experts(decisions)
        events = {
            d.position.id: PositionSettled(decision=d, expert_id=experts_by_position[d.position.id])
            for d in decisions
        }
        applied = await self.positions.apply_settlements(decisions, events)
        report.settled = len(applied)
        report.by_outcome = dict(Counter(d.outcome.value for d in applied))
        if len(applied) < len(decisions):
            self.logger.warning(
                f"{len(decisions) - len(applied)} positions were no longer pending at persist time"
            )

        expert_ids: List[str] = []
        for decision in applied:
            self.publisher.record(events[decision.position.id])
            report.events_published += 1
            expert_id = experts_by_position[decision.position.id]
            if expert_id is not None and expert_id not in expert_ids:
                expert_ids.append(expert_id)

        await self._recalculate_experts(expert_ids, report)

        self.logger.info(
            f"Settlement run: outcomes={report.outcomes_found} candidates={report.candidates} "
            f"settled={report.settled} skipped={report.skipped} failures={len(report.failures)} "
            f"experts={report.experts_recalculated}/{len(expert_ids)}"
            + (" (cancelled)" if report.cancelled else "")
        )
        return report

    def _classify(
        self,
        candidates: Sequence[PositionRecord],
        by_event: Dict[str, SportEventOutcome],
        now: datetime,
        report: SettlementRunReport,
    ) -> List[SettlementDecision]:
        decisions: List[SettlementDecision] = []
        for position in candidates:
            if self.cancelled:
                report.cancelled = True
                self.logger.info(
                    f"Settlement cancelled after {len(decisions)} of {len(candidates)} positions"
                )
                break

            outcome = by_event.get(position.event_id)
            if position.status is not PositionStatus.PENDING or outcome is None:
                report.skipped += 1
                continue

            try:
                result = settle_selection(
                    self.dispatcher,
                    self.parser,
                    position.market,
                    position.selection,
                    outcome,
                )
            except Exception as e:
                self.logger.warning(f"Failed to classify position {position.id}: {e}", exc_info=True)
                report.failures.append(SettlementFailure(position.id, str(e)))
                continue

            decisions.append(SettlementDecision(position, result, now))
            self.items_processed += 1
        return decisions

    async def _expert_for(self, position: PositionRecord) -> Optional[str]:
        if position.expert_id is not None:
            return position.expert_id
        if not position.is_expert:
            return None
        return await self.experts.expert_id_for_user(position.creator_id)

    async def _resolve_experts(self, decisions: Sequence[SettlementDecision]) -> Dict[str, Optional[str]]:
        resolved: Dict[str, Optional[str]] = {}
        for decision in decisions:
            resolved[decision.position.id] = await self._expert_for(decision.position)
        return resolved

    async def _recalculate_experts(self, expert_ids: Sequence[str], report: SettlementRunReport) -> None:
        if not expert_ids:
            return
        results = await asyncio.gather(*(self._recalculate_one(e) for e in expert_ids))
        report.experts_recalculated = sum(1 for ok in results if ok)
        report.experts_failed = len(results) - report.experts_recalculated

    async def _recalculate_one(self, expert_id: str) -> bool:
        try:
            await self.statistics.recalculate(expert_id)
            return True
        except ExpertNotFoundError as e:
            self.logger.warning(f"Skipping statistics for expert {expert_id}: {e}")
        except Exception as e:
            self.logger.error(f"Failed to recalculate statistics for expert {expert_id}: {e}", exc_info=True)
        return False


def _latest_by_event(outcomes: Sequence[SportEventOutcome]) -> Dict[str, SportEventOutcome]:
    by_event: Dict[str, SportEventOutcome] = {}
    for outcome in outcomes:
        current = by_event.get(outcome.event_id)
        if current is None or outcome.settled_at >= current.settled_at:
            by_event[outcome.event_id] = outcome
    return by_event


__all__ = ["SettlePositionsJob"]
