"""report — Report Compiler Pipeline package.

Pipeline stages:
  A. normalize  → NormalizedApplicant
  B. derive     → DerivedReportModel
  C. view_model → ReportViewModel
  D. render_pdf → ReportDocument → PDF bytes
"""

# ── Entry points ──────────────────────────────────────────────────────────────
from .pipeline import (  # noqa: F401
    compile_document,
    compile_report,
    compile_report_context,
    export_report,
    report_filename,
)

# ── Pipeline stages (importable for testing / advanced use) ──────────────────
from .normalize import normalize_applicant  # noqa: F401
from .derive import derive_report_model, overall_status_of  # noqa: F401
from .view_model import build_view_model, ReportViewModel  # noqa: F401
from .render_pdf import ReportDocument, render_pdf  # noqa: F401
