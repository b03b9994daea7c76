"""Scan session lifecycle: admission gate, acceptance and accumulation."""

import math
import threading
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

import numpy as np

from ..core.constants import CONFIDENCE_ACCEPT
from ..core.types import (
    RecognitionResult,
    ScanRecord,
    SessionState,
    SessionSummary,
    SyncTaskKind,
)
from ..recognize.engine import RecognitionEngine
from ..store.db import DeckStore
from ..utils.error_handler import RecognitionUnavailable, SessionStateError
from ..utils.log import LoggerMixin
from .summary import format_money, summarize


class SubmitStatus(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    SKIPPED = "skipped"
    FAILED = "failed"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class SubmitOutcome:
    status: SubmitStatus
    result: Optional[RecognitionResult] = None
    scan_record: Optional[ScanRecord] = None
    error: Optional[Exception] = None

    @property
    def accepted(self) -> bool:
        return self.status is SubmitStatus.ACCEPTED


class ScanSession(LoggerMixin):
    """One scanner instance: at most one active session, one frame in flight.

    The admission gate is a non-blocking try-lock. A frame that arrives
    while another is being evaluated is dropped (SKIPPED), never queued.
    Session state is checked again when a result is committed, so a result
    that lands after stop() is discarded.
    """

    def __init__(
        self,
        engine: RecognitionEngine,
        store: DeckStore,
        accept_threshold: float = CONFIDENCE_ACCEPT,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.engine = engine
        self.store = store
        self.accept_threshold = accept_threshold
        self.id_factory = id_factory

        self._gate = threading.Lock()
        self._state_lock = threading.Lock()
        self._state = SessionState.IDLE
        self._session_id: Optional[str] = None
        self._accepted: List[RecognitionResult] = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def results(self) -> List[RecognitionResult]:
        """Accepted results, most recent first."""
        with self._state_lock:
            return list(reversed(self._accepted))

    def running_totals(self):
        """Deck count and total sell value of the session so far."""
        with self._state_lock:
            sell = math.fsum(r.pricing.sell_price for r in self._accepted)
            return len(self._accepted), format_money(sell)

    def start(self) -> str:
        """Begin a fresh session. Never resumes a previous one."""
        with self._state_lock:
            if self._state is SessionState.ACTIVE:
                raise SessionStateError(
                    "A session is already active", details={"session_id": self._session_id}
                )
            self._session_id = self.id_factory()
            self._accepted = []
            self._state = SessionState.ACTIVE
        self.logger.info("Session started", session_id=self._session_id)
        return self._session_id

    def submit_frame(
        self,
        frame: np.ndarray,
        on_result: Optional[Callable[[RecognitionResult], None]] = None,
    ) -> SubmitOutcome:
        """Evaluate one frame if the gate is free and keep it if confident enough."""
        with self._state_lock:
            if self._state is not SessionState.ACTIVE:
                return SubmitOutcome(SubmitStatus.INACTIVE)
            session_id = self._session_id

        if not self._gate.acquire(blocking=False):
            self.logger.debug("Frame skipped, evaluation in flight", session_id=session_id)
            return SubmitOutcome(SubmitStatus.SKIPPED)

        try:
            try:
                result = self.engine.evaluate(frame)
            except RecognitionUnavailable as e:
                self.logger.warning("Frame not recognized", session_id=session_id, error=str(e))
                return SubmitOutcome(SubmitStatus.FAILED, error=e)

            if result.classification_confidence <= self.accept_threshold:
                self.logger.debug(
                    "Frame below acceptance threshold",
                    catalog_id=result.catalog_id,
                    confidence=result.classification_confidence,
                )
                return SubmitOutcome(SubmitStatus.REJECTED, result=result)

            record = self._commit(session_id, result)
            if record is None:
                return SubmitOutcome(SubmitStatus.INACTIVE, result=result)
        finally:
            self._gate.release()

        if on_result is not None:
            on_result(result)
        return SubmitOutcome(SubmitStatus.ACCEPTED, result=result, scan_record=record)

    def _commit(self, session_id: str, result: RecognitionResult) -> Optional[ScanRecord]:
        """Persist an accepted result, then queue its upload, then accumulate it.

        The scan record and its sync task are two separate writes. If the
        second fails the record stays committed without a task and is left
        for DeckStore.find_orphaned_scan_records to pick up.
        """
        with self._state_lock:
            if self._state is not SessionState.ACTIVE or self._session_id != session_id:
                self.logger.info(
                    "Late result discarded, session no longer active",
                    session_id=session_id,
                    catalog_id=result.catalog_id,
                )
                return None

            record = ScanRecord(
                id=str(uuid.uuid4()),
                session_id=session_id,
                catalog_id=result.catalog_id,
                observed_at=result.observed_at,
                classification_confidence=result.classification_confidence,
                pricing=result.pricing,
            )
            self.store.add_scan_record(record)

            try:
                self.store.enqueue_sync_task(SyncTaskKind.HISTORY_UPLOAD, record.id)
            except Exception as e:
                self.logger.warning(
                    "History upload not queued, scan record orphaned",
                    scan_id=record.id,
                    error=str(e),
                )

            self._accepted.append(result)

        self.logger.info(
            "Deck accepted",
            session_id=session_id,
            scan_id=record.id,
            catalog_id=result.catalog_id,
            confidence=round(result.classification_confidence, 4),
            verification_score=result.text_verification.verification_score,
        )
        return record

    def stop(self) -> SessionSummary:
        """Close the session and fold its accepted results into a summary."""
        with self._state_lock:
            if self._state is not SessionState.ACTIVE:
                raise SessionStateError(
                    "No active session to stop", details={"state": self._state.value}
                )
            self._state = SessionState.CLOSED
            session_id = self._session_id
            accepted = list(self._accepted)

        summary = summarize(session_id, accepted)
        self.logger.info(
            "Session stopped",
            session_id=session_id,
            total_decks=summary.total_decks,
            total_profit=summary.total_profit,
            average_margin=summary.average_margin,
        )
        return summary
