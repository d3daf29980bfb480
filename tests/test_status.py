"""
Tests for status.py

Validates:
- Overall-status rule chain (order matters)
- Label vocabulary is total
- Tones and colors
"""

import pytest

from kycreport.status import (
    AMBER,
    GREEN,
    GREY,
    RED,
    OverallStatus,
    StatusTone,
    StepState,
    derive_overall_status,
    label_tone,
    overall_tone,
    status_label,
    status_tone,
)


class TestDeriveOverallStatus:

    def test_all_verified(self):
        assert derive_overall_status(["verified", "approved", "passed", "completed"]) is OverallStatus.APPROVED

    def test_single_rejection_wins(self):
        assert derive_overall_status(["verified", "verified", "failed"]) is OverallStatus.REJECTED
        assert derive_overall_status(["pending", "rejected"]) is OverallStatus.REJECTED

    def test_verified_and_pending(self):
        assert derive_overall_status(["verified", "requested"]) is OverallStatus.NEEDS_REVIEW

    def test_only_pending(self):
        assert derive_overall_status(["pending", "in_progress"]) is OverallStatus.PENDING

    def test_unknown_values(self):
        assert derive_overall_status(["verified", "mystery"]) is OverallStatus.PENDING

    def test_empty_is_pending(self):
        assert derive_overall_status([]) is OverallStatus.PENDING

    def test_case_insensitive(self):
        assert derive_overall_status(["VERIFIED", " Passed "]) is OverallStatus.APPROVED

    def test_label(self):
        assert OverallStatus.NEEDS_REVIEW.label == "NEEDS REVIEW"


class TestStatusLabel:

    @pytest.mark.parametrize("raw, label", [
        ("verified", "APPROVED"),
        ("approved", "APPROVED"),
        ("rejected", "REJECTED"),
        ("pending", "PENDING"),
        ("requested", "PENDING"),
        ("needsReview", "NEEDS REVIEW"),
        ("needs_review", "NEEDS REVIEW"),
        ("passed", "PASS"),
        ("failed", "FAIL"),
        ("on_hold", "ON_HOLD"),
        (None, "—"),
        ("", "—"),
    ])
    def test_vocabulary(self, raw, label):
        assert status_label(raw) == label


class TestStatusTone:

    @pytest.mark.parametrize("raw", ["verified", "Pass", "ok", "MATCH", "valid", "CLEAR"])
    def test_positive(self, raw):
        assert status_tone(raw) is StatusTone.POSITIVE

    @pytest.mark.parametrize("raw", ["rejected", "FAIL", "expired", "invalid"])
    def test_negative(self, raw):
        assert status_tone(raw) is StatusTone.NEGATIVE

    @pytest.mark.parametrize("raw", ["pending", "review", "needsReview", "in_progress"])
    def test_in_progress(self, raw):
        assert status_tone(raw) is StatusTone.IN_PROGRESS

    def test_neutral_fallback(self):
        assert status_tone("whatever") is StatusTone.NEUTRAL
        assert status_tone(None) is StatusTone.NEUTRAL

    def test_label_tone(self):
        assert label_tone("NEEDS REVIEW") is StatusTone.IN_PROGRESS
        assert label_tone("FAIL") is StatusTone.NEGATIVE
        assert label_tone("—") is StatusTone.NEUTRAL

    def test_overall_pill_colors(self):
        assert overall_tone(OverallStatus.APPROVED).rgb == GREEN
        assert overall_tone(OverallStatus.REJECTED).rgb == RED
        assert overall_tone(OverallStatus.NEEDS_REVIEW).rgb == AMBER
        assert overall_tone(OverallStatus.PENDING).rgb == GREY


class TestStepState:

    @pytest.mark.parametrize("raw, state", [
        ("passed", StepState.PASSED),
        ("failed", StepState.FAILED),
        ("pending", StepState.PENDING),
        ("na", StepState.NA),
        (None, StepState.NA),
    ])
    def test_parse(self, raw, state):
        assert StepState.parse(raw) is state
