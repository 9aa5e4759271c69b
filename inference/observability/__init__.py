"""
Observability & Audit Layer

RESPONSIBILITY: Append-only audit trail for every pipeline stage
ALLOWED INPUTS: (event_type, user_id, target_id, metadata) from any layer
OUTPUTS: AuditEvent records, audit queries, audit report

WHAT THIS LAYER MUST NOT DO:
============================
- Modify system behavior
- Filter or interpret events (only record them)
- Make decisions based on logged data
- Block or abort the operation that triggered an event

BOUNDARY ENFORCEMENT:
=====================
- Writes are best-effort: a failed write is reported through logging,
  never raised to the caller
- NEVER modifies recorded events
- Provides read-only access to the trail
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
import logging
import uuid

# ONLY import from contracts and the storage interface
from ..contracts.base import AuditEventType, format_timestamp, utc_now
from ..contracts.entities import AuditEvent, freeze_metadata
from ..domain.serialization import audit_event_from_dict, audit_event_to_dict
from ..storage.backends import AUDIT_LOG, CollectionStore

logger = logging.getLogger(__name__)


DEFAULT_RECENT_LIMIT = 50


@dataclass
class AuditConfig:
    """Configuration for the audit trail."""
    enabled: bool = True


class AuditLog:
    """
    Append-only audit trail over the audit_log collection.

    Ordering:
    - get_user_events: newest first
    - get_target_events: oldest first (the story of one record)
    - get_recent_by_type: newest first, truncated to limit
    Equal timestamps keep append order.
    """

    def __init__(
        self,
        store: CollectionStore,
        config: Optional[AuditConfig] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self._store = store
        self._config = config or AuditConfig()
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def log(
        self,
        event_type: AuditEventType,
        user_id: str,
        target_id: str,
        metadata: Optional[Mapping[str, Any]] = None
    ) -> Optional[str]:
        """
        Record one event.

        Returns the event id, or None when auditing is disabled. A failed
        write is logged and the id is still returned; no event is stored.
        """
        if not self._config.enabled:
            return None

        event = AuditEvent(
            event_id=f"audit_{uuid.uuid4().hex[:16]}",
            event_type=AuditEventType(event_type),
            user_id=user_id,
            target_id=target_id,
            timestamp=self._clock(),
            metadata=freeze_metadata(metadata),
        )

        try:
            self._store.append(AUDIT_LOG, audit_event_to_dict(event))
        except Exception:
            logger.error(
                "Audit write failed for %s on %s (user %s)",
                event.event_type.value, target_id, user_id, exc_info=True
            )

        return event.event_id

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def _events(self) -> List[AuditEvent]:
        try:
            records = self._store.read(AUDIT_LOG)
        except Exception:
            logger.error("Audit read failed", exc_info=True)
            return []
        return [audit_event_from_dict(r) for r in records]

    @staticmethod
    def _newest_first(events: List[AuditEvent]) -> List[AuditEvent]:
        # reversed() first so equal timestamps come out latest-appended first
        return sorted(reversed(events), key=lambda e: e.timestamp, reverse=True)

    def get_user_events(self, user_id: str) -> Tuple[AuditEvent, ...]:
        events = [e for e in self._events() if e.user_id == user_id]
        return tuple(self._newest_first(events))

    def get_target_events(self, target_id: str) -> Tuple[AuditEvent, ...]:
        events = [e for e in self._events() if e.target_id == target_id]
        return tuple(sorted(events, key=lambda e: e.timestamp))

    def get_recent_by_type(
        self,
        event_type: AuditEventType,
        limit: int = DEFAULT_RECENT_LIMIT
    ) -> Tuple[AuditEvent, ...]:
        event_type = AuditEventType(event_type)
        events = [e for e in self._events() if e.event_type == event_type]
        return tuple(self._newest_first(events)[:max(limit, 0)])

    def generate_audit_report(self, user_id: Optional[str] = None) -> Dict[str, Any]:
        """Counts by event type, optionally for one user."""
        events = self._events()
        if user_id is not None:
            events = [e for e in events if e.user_id == user_id]
        events.sort(key=lambda e: e.timestamp)

        by_type: Dict[str, int] = {}
        for event in events:
            key = event.event_type.value
            by_type[key] = by_type.get(key, 0) + 1

        return {
            'total_entries': len(events),
            'by_event_type': by_type,
            'time_range': {
                'start': format_timestamp(events[0].timestamp) if events else None,
                'end': format_timestamp(events[-1].timestamp) if events else None,
            },
            'generated_at': format_timestamp(self._clock()),
        }


__all__ = ["AuditConfig", "AuditLog", "DEFAULT_RECENT_LIMIT"]
