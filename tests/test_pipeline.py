"""
Tests for report/pipeline.py

Validates:
- compile_report returns PDF bytes for the canonical scenarios
- Filenames contain only ASCII alphanumerics and single separators
- export_report writes atomically and leaves nothing behind on failure
- Only serialization failures propagate
"""

import re

import pytest

from kycreport.config import ReportConfig
from kycreport.exceptions import ReportSerializationError
from kycreport.flows import FlowCatalog, FlowRequirementResolver
from kycreport.report import pipeline
from kycreport.report.pipeline import (
    compile_report,
    compile_report_context,
    export_report,
    report_filename,
)
from kycreport.report.render_pdf import ReportDocument
from kycreport.status import OverallStatus


class TestCompileReport:

    def test_returns_pdf(self, applicant, verification_results, resolver, config, generated_at):
        data = compile_report(
            applicant, verification_results, client_name="Acme Bank",
            generated_at=generated_at, config=config, resolver=resolver,
        )
        assert isinstance(data, bytes)
        assert data.startswith(b"%PDF")

    def test_empty_inputs(self, resolver, config):
        assert compile_report({}, [], config=config, resolver=resolver).startswith(b"%PDF")

    def test_malformed_nested_data(self, resolver, config):
        results = [
            {"verificationType": "idDocument", "processedData": "oops", "rawResponse": ["x"]},
            {"verificationType": "selfie", "processedData": {"liveness": "bad"}},
            {"verificationType": "riskEvaluation", "rawResponse": None},
        ]
        applicant = {"name": "Broken", "geoLocation": "nowhere", "requiredVerifications": "nope"}
        assert compile_report(applicant, results, config=config, resolver=resolver).startswith(b"%PDF")

    def test_non_string_name(self, resolver, config):
        data = compile_report({"name": 12345, "flowId": {"name": 7}}, [], config=config, resolver=resolver)
        assert data.startswith(b"%PDF")

    def test_logo_and_client(self, applicant, resolver, config, logo_base64):
        data = compile_report(applicant, [], client_name="Acme", logo_base64=logo_base64,
                              config=config, resolver=resolver)
        assert data.startswith(b"%PDF")

    def test_client_name_defaults_to_config(self, applicant, resolver, generated_at):
        view_model = compile_report_context(
            applicant, [], generated_at=generated_at,
            config=ReportConfig(client_name="Config Client"), resolver=resolver,
        )
        assert view_model.client_name == "Config Client"
        assert view_model.cover.client_line == "Created for Config Client"

    def test_serialization_failure_propagates(self, applicant, resolver, config, monkeypatch):
        def boom(self, *args, **kwargs):
            raise RuntimeError("encoder exploded")

        monkeypatch.setattr(ReportDocument, "output", boom)
        with pytest.raises(ReportSerializationError):
            compile_report(applicant, [], config=config, resolver=resolver)


class TestScenarios:

    def _status(self, applicant, resolver, generated_at):
        return compile_report_context(applicant, [], generated_at=generated_at, resolver=resolver).cover.overall_status

    def test_basic_idv_approved(self, resolver, generated_at):
        applicant = {"flowName": "BASIC_IDV", "steps": {"idDoc": "passed", "selfie": "passed"}}
        assert self._status(applicant, resolver, generated_at) is OverallStatus.APPROVED

    def test_enhanced_needs_review(self, resolver, generated_at):
        applicant = {
            "flowName": "EnhancedKYC",
            "steps": {"phone": "passed", "email": "passed", "idDoc": "passed", "selfie": "passed", "poa": "pending"},
        }
        assert self._status(applicant, resolver, generated_at) is OverallStatus.NEEDS_REVIEW

    def test_default_rejected(self, resolver, generated_at):
        applicant = {
            "steps": {"phone": "passed", "email": "passed", "idDoc": "failed", "selfie": "passed", "poa": "passed"},
        }
        assert self._status(applicant, resolver, generated_at) is OverallStatus.REJECTED

    def test_custom_catalog_injected(self, generated_at):
        catalog = FlowCatalog.default().with_modules("Payroll", ["identity_document"])
        resolver = FlowRequirementResolver(catalog)
        applicant = {"flowName": "Payroll", "steps": {"idDoc": "passed", "selfie": "failed"}}
        assert self._status(applicant, resolver, generated_at) is OverallStatus.APPROVED


class TestReportFilename:

    @pytest.mark.parametrize("name, expected", [
        ("Jane Doe", "NOBIS-Verification-Report-Jane-Doe.pdf"),
        ("  José  Álvarez--Núñez ", "NOBIS-Verification-Report-Jose-Alvarez-Nunez.pdf"),
        ("李雷", "NOBIS-Verification-Report-Unknown.pdf"),
        ("", "NOBIS-Verification-Report-Unknown.pdf"),
        (None, "NOBIS-Verification-Report-Unknown.pdf"),
        ("O'Brien / Smith, Jr.", "NOBIS-Verification-Report-O-Brien-Smith-Jr.pdf"),
        (12345, "NOBIS-Verification-Report-12345.pdf"),
    ])
    def test_examples(self, name, expected, config):
        assert report_filename(name, config) == expected

    @pytest.mark.parametrize("name", ["a--b", "--x--", "Ünïcödé  Ñame", "tab\tname\n", "...", "x" * 5])
    def test_only_ascii_and_single_separators(self, name, config):
        stem = report_filename(name, config)[:-len(".pdf")]
        assert re.fullmatch(r"[A-Za-z0-9]+(-[A-Za-z0-9]+)*", stem)

    def test_non_string_name_exported(self, tmp_path, resolver, config):
        path = export_report({"name": 12345}, [], tmp_path, config=config, resolver=resolver)
        assert path.name == "NOBIS-Verification-Report-12345.pdf"

    def test_custom_prefix(self):
        assert report_filename("Ann", ReportConfig(report_prefix="ACME-KYC")) == "ACME-KYC-Ann.pdf"


class TestExportReport:

    def test_writes_file(self, tmp_path, applicant, verification_results, resolver, config):
        path = export_report(applicant, verification_results, tmp_path, config=config, resolver=resolver)
        assert path == tmp_path / "NOBIS-Verification-Report-Jane-Doe.pdf"
        assert path.read_bytes().startswith(b"%PDF")
        assert [p.name for p in tmp_path.iterdir()] == [path.name]

    def test_replaces_existing(self, tmp_path, applicant, resolver, config):
        target = tmp_path / "NOBIS-Verification-Report-Jane-Doe.pdf"
        target.write_bytes(b"stale")
        export_report(applicant, [], tmp_path, config=config, resolver=resolver)
        assert target.read_bytes().startswith(b"%PDF")

    def test_rename_failure_leaves_nothing(self, tmp_path, applicant, resolver, config, monkeypatch):
        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(pipeline.os, "replace", broken_replace)
        with pytest.raises(ReportSerializationError) as exc_info:
            export_report(applicant, [], tmp_path, config=config, resolver=resolver)
        assert exc_info.value.details["path"].endswith(".pdf")
        assert list(tmp_path.iterdir()) == []

    def test_encoder_failure_writes_nothing(self, tmp_path, applicant, resolver, config, monkeypatch):
        def boom(self, *args, **kwargs):
            raise RuntimeError("encoder exploded")

        monkeypatch.setattr(ReportDocument, "output", boom)
        with pytest.raises(ReportSerializationError):
            export_report(applicant, [], tmp_path, config=config, resolver=resolver)
        assert list(tmp_path.iterdir()) == []
