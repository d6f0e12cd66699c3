"""Audit trail for ledger mutations."""

import logging
import threading
from collections import deque
from typing import Any, Protocol

from estate_ledger.exceptions import SinkError
from estate_ledger.ledger.common import Clock, IdFactory, entity_path, new_id, utcnow
from estate_ledger.models import AuditAction, AuditEvent

logger = logging.getLogger(__name__)


class AuditSink(Protocol):
    def write_event(self, event: AuditEvent) -> None: ...


class AuditLog:
    """Build audit events and fan them out to sinks.

    Delivery is fire-and-forget: a sink raising ``SinkError`` is logged at
    ERROR and counted in ``failures``; the business operation that produced
    the event is not affected. Any other exception propagates.

    Parameters
    ----------
    sinks : list[AuditSink] | None
        Destinations for every event.
    clock : Clock | None
        Timestamp source for ``created_at``.
    id_factory : IdFactory | None
        Generator for ``event_id``.
    history_size : int
        Number of recent events kept in memory (``events``). Older events
        are dropped; 0 keeps none.
    """

    def __init__(
        self,
        sinks: list[AuditSink] | None = None,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
        history_size: int = 1000,
    ) -> None:
        self.sinks: list[AuditSink] = list(sinks or [])
        self.clock = clock or utcnow
        self.id_factory = id_factory or new_id
        if history_size < 0:
            raise ValueError(f"history_size must be non-negative, got {history_size}")
        self.history_size = history_size
        self._events: deque[AuditEvent] = deque(maxlen=history_size)
        self.failures = 0
        self._lock = threading.Lock()

    @property
    def events(self) -> list[AuditEvent]:
        """Recent events, oldest first."""
        with self._lock:
            return list(self._events)

    def add_sink(self, sink: AuditSink) -> None:
        self.sinks.append(sink)

    def record(
        self,
        *,
        entity_id: str,
        actor_id: str,
        action: AuditAction,
        entity_type: str,
        target_id: str,
        collection: str,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
    ) -> AuditEvent:
        """Emit one audit event and return it."""
        event = AuditEvent(
            event_id=self.id_factory(),
            entity_id=entity_id,
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            target_id=target_id,
            entity_path=entity_path(entity_id, collection, target_id),
            changes={"before": before, "after": after},
            created_at=self.clock(),
        )

        if self.history_size:
            with self._lock:
                self._events.append(event)

        for sink in self.sinks:
            try:
                sink.write_event(event)
            except SinkError:
                with self._lock:
                    self.failures += 1
                logger.error(
                    "Audit sink %s failed for %s %s",
                    type(sink).__name__,
                    entity_type,
                    target_id,
                    exc_info=True,
                    extra={"extra": {"event_id": event.event_id, "entity_id": entity_id}},
                )

        return event

    def history(self, target_id: str) -> list[AuditEvent]:
        """Events recorded for one target, oldest first."""
        return [e for e in self.events if e.target_id == target_id]
