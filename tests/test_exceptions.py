"""
Tests for exceptions.py

Validates:
- Deterministic codes per class
- to_dict / to_json serialization
- wrap_internal_exception mapping and fallback
"""

import json

import pytest

from kycreport.exceptions import (
    FlowCatalogError,
    InternalError,
    KycReportError,
    MissingDataError,
    ReportSerializationError,
    UnknownFlowError,
    wrap_internal_exception,
)


@pytest.mark.parametrize("cls, code", [
    (KycReportError, "KR_INTERNAL_ERROR"),
    (MissingDataError, "KR_MISSING_DATA"),
    (UnknownFlowError, "KR_UNKNOWN_FLOW"),
    (FlowCatalogError, "KR_CATALOG_INVALID"),
    (ReportSerializationError, "KR_SERIALIZATION_FAILED"),
    (InternalError, "KR_INTERNAL_ERROR"),
])
def test_codes(cls, code):
    error = cls("boom")
    assert error.code == code
    assert isinstance(error, KycReportError)
    assert str(error) == f"[{code}] boom"


def test_to_dict_and_json():
    error = FlowCatalogError("bad flow", details={"flow": "X"}, request_id="abc123")
    assert error.to_dict() == {
        "code": "KR_CATALOG_INVALID",
        "message": "bad flow",
        "details": {"flow": "X"},
        "request_id": "abc123",
    }
    assert json.loads(error.to_json())["details"] == {"flow": "X"}


def test_request_id_omitted_when_absent():
    assert "request_id" not in MissingDataError("x").to_dict()


def test_wrap_mapped():
    wrapped = wrap_internal_exception(KeyError("email"))
    assert isinstance(wrapped, MissingDataError)
    assert wrapped.details == {"internal_error": "KeyError"}


def test_wrap_fallback():
    wrapped = wrap_internal_exception(
        RuntimeError("nope"), default_message="failed", fallback=ReportSerializationError,
    )
    assert isinstance(wrapped, ReportSerializationError)
    assert wrapped.message == "failed"


def test_wrap_default_internal():
    wrapped = wrap_internal_exception(ZeroDivisionError("x"), details={"step": "render"})
    assert isinstance(wrapped, InternalError)
    assert wrapped.details == {"step": "render", "internal_error": "ZeroDivisionError"}
