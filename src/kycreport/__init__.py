"""
kycreport: flow-aware KYC verification report compiler.

Turns an applicant record and its verification results into a paginated
PDF report. Which profile fields and steps appear is decided by the
applicant's onboarding flow.

Quick start:
    from kycreport import compile_report, report_filename

    pdf = compile_report(applicant, verification_results, client_name="Acme Bank")
    name = report_filename(applicant.get("name"))
"""

__version__ = "1.0.0"

from .config import ReportConfig
from .exceptions import (
    KycReportError,
    MissingDataError,
    UnknownFlowError,
    FlowCatalogError,
    ReportSerializationError,
    InternalError,
)
from .flows import (
    DEFAULT_FLOW,
    NOT_COLLECTED,
    Field,
    FlowAttachment,
    FlowCatalog,
    FlowDefinition,
    FlowRequirementResolver,
    Step,
    default_resolver,
    flow_attachments,
    load_flow_catalog,
)
from .status import (
    OverallStatus,
    StatusTone,
    StepState,
    derive_overall_status,
    status_label,
    status_tone,
)
from .report import (
    ReportDocument,
    compile_report,
    compile_report_context,
    export_report,
    overall_status_of,
    report_filename,
)

__all__ = [
    "__version__",
    # Config
    "ReportConfig",
    # Exceptions
    "KycReportError",
    "MissingDataError",
    "UnknownFlowError",
    "FlowCatalogError",
    "ReportSerializationError",
    "InternalError",
    # Flows
    "DEFAULT_FLOW",
    "NOT_COLLECTED",
    "Field",
    "FlowAttachment",
    "FlowCatalog",
    "FlowDefinition",
    "FlowRequirementResolver",
    "Step",
    "default_resolver",
    "flow_attachments",
    "load_flow_catalog",
    # Status
    "OverallStatus",
    "StatusTone",
    "StepState",
    "derive_overall_status",
    "status_label",
    "status_tone",
    # Report
    "ReportDocument",
    "compile_report",
    "compile_report_context",
    "export_report",
    "overall_status_of",
    "report_filename",
]
