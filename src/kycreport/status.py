"""
Status vocabularies and the overall-status rule chain.

Provider payloads use an open vocabulary ("verified", "passed", "requested",
"CLEAR", "NO_MATCH", ...). Everything the report shows goes through three
total functions over closed enums:

    status_label(raw)  -> display label (APPROVED, PASS, NEEDS REVIEW, ...)
    status_tone(raw)   -> StatusTone (POSITIVE / NEGATIVE / IN_PROGRESS / NEUTRAL)
    derive_overall_status(statuses) -> OverallStatus

Unknown values never raise: labels pass through uppercased, tones fall back
to NEUTRAL, outcomes to OTHER.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Optional

from .formatting import MISSING_VALUE

RGB = tuple[int, int, int]


# =============================================================================
# STEP STATE
# =============================================================================

class StepState(str, Enum):
    """Per-step completion state shown on applicant rows."""
    NA = "na"
    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"

    @classmethod
    def parse(cls, raw: Any) -> "StepState":
        key = _norm(raw)
        if key in ("verified", "approved", "passed", "completed"):
            return cls.PASSED
        if key in ("failed", "rejected"):
            return cls.FAILED
        if key in ("pending", "in_progress", "requested"):
            return cls.PENDING
        return cls.NA


# =============================================================================
# OVERALL STATUS
# =============================================================================

class OverallStatus(str, Enum):
    """Applicant-level decision derived from the step outcomes."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    NEEDS_REVIEW = "NEEDS_REVIEW"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class Outcome(str, Enum):
    """A single step outcome, reduced for the overall rule chain."""
    VERIFIED = "verified"
    REJECTED = "rejected"
    PENDING = "pending"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: Any) -> "Outcome":
        key = _norm(raw)
        if key in ("verified", "approved", "passed", "completed"):
            return cls.VERIFIED
        if key in ("rejected", "failed"):
            return cls.REJECTED
        if key in ("pending", "requested", "in_progress"):
            return cls.PENDING
        return cls.OTHER


def derive_overall_status(statuses: Iterable[Any]) -> OverallStatus:
    """Apply the ordered rule chain to the raw step statuses.

    1. every entry verified              -> APPROVED
    2. any entry rejected / failed       -> REJECTED
    3. some verified and some pending    -> NEEDS_REVIEW
    4. otherwise (including no entries)  -> PENDING
    """
    outcomes = [Outcome.parse(status) for status in statuses]
    if not outcomes:
        return OverallStatus.PENDING
    if all(outcome is Outcome.VERIFIED for outcome in outcomes):
        return OverallStatus.APPROVED
    if any(outcome is Outcome.REJECTED for outcome in outcomes):
        return OverallStatus.REJECTED
    if Outcome.VERIFIED in outcomes and Outcome.PENDING in outcomes:
        return OverallStatus.NEEDS_REVIEW
    return OverallStatus.PENDING


# =============================================================================
# LABELS
# =============================================================================

class StatusLabel(str, Enum):
    """Controlled display vocabulary for step / check statuses."""
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PENDING = "PENDING"
    NEEDS_REVIEW = "NEEDS REVIEW"
    PASS = "PASS"
    FAIL = "FAIL"


_LABELS: dict[str, StatusLabel] = {
    "verified": StatusLabel.APPROVED,
    "approved": StatusLabel.APPROVED,
    "rejected": StatusLabel.REJECTED,
    "pending": StatusLabel.PENDING,
    "requested": StatusLabel.PENDING,
    "needsreview": StatusLabel.NEEDS_REVIEW,
    "needs_review": StatusLabel.NEEDS_REVIEW,
    "passed": StatusLabel.PASS,
    "failed": StatusLabel.FAIL,
}


def classify_label(raw: Any) -> Optional[StatusLabel]:
    return _LABELS.get(_norm(raw))


def status_label(raw: Any) -> str:
    """Normalized label; unknown values pass through uppercased."""
    label = classify_label(raw)
    if label is not None:
        return label.value
    if raw is None or not str(raw).strip():
        return MISSING_VALUE
    return str(raw).strip().upper()


# =============================================================================
# TONES / COLORS
# =============================================================================

class StatusTone(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    IN_PROGRESS = "in_progress"
    NEUTRAL = "neutral"

    @property
    def rgb(self) -> RGB:
        return TONE_COLORS[self]


GREEN: RGB = (22, 163, 74)
RED: RGB = (220, 38, 38)
AMBER: RGB = (217, 119, 6)
GREY: RGB = (100, 116, 139)

TONE_COLORS: dict[StatusTone, RGB] = {
    StatusTone.POSITIVE: GREEN,
    StatusTone.NEGATIVE: RED,
    StatusTone.IN_PROGRESS: AMBER,
    StatusTone.NEUTRAL: GREY,
}

_POSITIVE = frozenset({"verified", "approved", "passed", "pass", "ok", "match", "valid", "clear"})
_NEGATIVE = frozenset({"rejected", "failed", "fail", "expired", "invalid"})
_IN_PROGRESS = frozenset({"pending", "review", "needsreview", "needs_review", "in_progress"})


def status_tone(raw: Any) -> StatusTone:
    key = _norm(raw)
    if key in _POSITIVE:
        return StatusTone.POSITIVE
    if key in _NEGATIVE:
        return StatusTone.NEGATIVE
    if key in _IN_PROGRESS:
        return StatusTone.IN_PROGRESS
    return StatusTone.NEUTRAL


# Tone for a normalized label (PASS/FAIL/NEEDS REVIEW are not provider words)
_LABEL_TONES: dict[StatusLabel, StatusTone] = {
    StatusLabel.APPROVED: StatusTone.POSITIVE,
    StatusLabel.PASS: StatusTone.POSITIVE,
    StatusLabel.REJECTED: StatusTone.NEGATIVE,
    StatusLabel.FAIL: StatusTone.NEGATIVE,
    StatusLabel.PENDING: StatusTone.IN_PROGRESS,
    StatusLabel.NEEDS_REVIEW: StatusTone.IN_PROGRESS,
}


_LABEL_TONES_BY_TEXT: dict[str, StatusTone] = {
    label.value: tone for label, tone in _LABEL_TONES.items()
}


def label_tone(label: str) -> StatusTone:
    return _LABEL_TONES_BY_TEXT.get(label) or status_tone(label)


OVERALL_TONES: dict[OverallStatus, StatusTone] = {
    OverallStatus.APPROVED: StatusTone.POSITIVE,
    OverallStatus.REJECTED: StatusTone.NEGATIVE,
    OverallStatus.NEEDS_REVIEW: StatusTone.IN_PROGRESS,
    OverallStatus.PENDING: StatusTone.NEUTRAL,
}


def overall_tone(status: OverallStatus) -> StatusTone:
    return OVERALL_TONES[status]


def _norm(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, Enum):
        raw = raw.value
    return str(raw).strip().lower()
