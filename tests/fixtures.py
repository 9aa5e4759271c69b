"""
Shared Test Fixtures

Explicit, deterministic fixtures: fixed timestamps, ticking clocks and
hand-written signals. No random generation here; hypothesis strategies
live beside the property tests that use them.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from inference.contracts.base import (
    ClaimConfidence, ClaimPolarity, ClaimStatus, PatternCategory, SignalSource,
)
from inference.contracts.entities import Claim, Pattern, Signal
from inference.storage import CollectionStore


# =============================================================================
# FIXED TIMESTAMPS (deterministic)
# =============================================================================

EPOCH = datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
T1 = datetime(2026, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
T2 = datetime(2026, 1, 1, 10, 5, 0, tzinfo=timezone.utc)
T3 = datetime(2026, 1, 1, 10, 10, 0, tzinfo=timezone.utc)

USER_A = "user_alpha"
USER_B = "user_beta"


class TickingClock:
    """Returns start, start + step, start + 2*step, ... on successive calls."""

    def __init__(self, start: datetime = T1, step: timedelta = timedelta(seconds=1)):
        self._current = start
        self._step = step
        self.calls = 0

    def __call__(self) -> datetime:
        value = self._current
        self._current = self._current + self._step
        self.calls += 1
        return value


class FixedClock:
    """Always returns the same instant."""

    def __init__(self, value: datetime = T1):
        self.value = value

    def __call__(self) -> datetime:
        return self.value


# =============================================================================
# FAILING STORES
# =============================================================================

class FailingAppendStore(CollectionStore):
    """Reads succeed (empty); every append raises."""

    def __init__(self, exc: Exception = None):
        self._exc = exc or OSError("disk full")
        self.append_attempts = 0

    def read(self, collection: str) -> List[Dict[str, Any]]:
        return []

    def append(self, collection: str, record: Dict[str, Any]) -> None:
        self.append_attempts += 1
        raise self._exc


class FailingStore(FailingAppendStore):
    """Both reads and appends raise."""

    def read(self, collection: str) -> List[Dict[str, Any]]:
        raise self._exc


# =============================================================================
# SIGNALS
# =============================================================================

def make_signal(
    signal_id: str,
    question_id: str,
    raw_value,
    layer_ids: Sequence[int],
    user_id: str = USER_A,
    timestamp: datetime = T1,
    source: SignalSource = SignalSource.ONBOARDING,
) -> Signal:
    return Signal(
        signal_id=signal_id,
        user_id=user_id,
        question_id=question_id,
        layer_ids=tuple(layer_ids),
        raw_value=raw_value,
        timestamp=timestamp,
        source=source,
    )


def withdrawal_signals(user_id: str = USER_A) -> Tuple[Signal, ...]:
    """
    Three layer-6 stress signals whose claims all mention withdrawal.

    Expected: 3 friction claims on layer 6 and PRESSURE_WITHDRAWAL
    promoted with stability 0.3*0.75 + 0.3*(1/3) + 0.4*0.5, a float sum of
    0.5249999999999999 that rounds to 0.52.
    """
    return (
        make_signal("sig_w1", "stress.default_move", "withdraw", (6,), user_id),
        make_signal("sig_w2", "stress.default_move", "go quiet", (6,), user_id),
        make_signal("sig_w3", "stress.default_move", "become distant", (6,), user_id),
    )


def porous_boundary_signal(user_id: str = USER_A) -> Signal:
    return make_signal("sig_b1", "rel.boundary_style", "too porous", (10,), user_id)


# =============================================================================
# CLAIMS & PATTERNS (built directly, bypassing the claim engine)
# =============================================================================

def make_claim(
    claim_id: str,
    layer_id: int,
    text: str,
    confidence: ClaimConfidence = ClaimConfidence.MODERATE,
    polarity: ClaimPolarity = ClaimPolarity.NEUTRAL,
    user_id: str = USER_A,
) -> Claim:
    return Claim(
        claim_id=claim_id,
        layer_id=layer_id,
        text=text,
        polarity=polarity,
        confidence=confidence,
        evidence_refs=(f"sig_{claim_id}",),
        status=ClaimStatus.ACTIVE,
        created_at=T1,
        user_id=user_id,
    )


def make_pattern(
    pattern_id: str,
    stability_index: float,
    category: PatternCategory = PatternCategory.INDIVIDUAL,
    layer_ids: Sequence[int] = (6,),
    user_id: str = USER_A,
    supporting_claim_ids: Optional[Sequence[str]] = None,
) -> Pattern:
    return Pattern(
        pattern_id=pattern_id,
        category=category,
        layer_ids=tuple(layer_ids),
        name=pattern_id.rsplit(".", 1)[-1].title(),
        one_liner=f"One-liner for {pattern_id}",
        supporting_claim_ids=tuple(supporting_claim_ids or (f"clm_{pattern_id}",)),
        growth_edges=("Edge one", "Edge two"),
        confidence=ClaimConfidence.MODERATE,
        stability_index=stability_index,
        created_at=T1,
        user_id=user_id,
    )
