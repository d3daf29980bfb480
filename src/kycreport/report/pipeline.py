"""Report pipeline — single entry point for all report generation.

Every caller — the HTTP service, batch exports, tests — uses these functions.
There is exactly ONE rendering path in the codebase.
"""

import logging
import os
import tempfile
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from ..config import ReportConfig
from ..exceptions import ReportSerializationError, wrap_internal_exception
from ..flows import FlowRequirementResolver, default_resolver
from ..formatting import safe_filename_part
from .derive import derive_report_model
from .normalize import normalize_applicant
from .render_pdf import ReportDocument, render_pdf
from .view_model import ReportViewModel, build_view_model

logger = logging.getLogger(__name__)


def compile_report_context(
    applicant: dict,
    verification_results: list,
    client_name: Optional[str] = None,
    generated_at: Optional[datetime] = None,
    config: Optional[ReportConfig] = None,
    resolver: Optional[FlowRequirementResolver] = None,
) -> ReportViewModel:
    """Run normalize → derive → view_model and return the view model.

    Used by callers that need the report content without a PDF (previews,
    tests).
    """
    config = (config or ReportConfig.from_env()).with_client(client_name)
    resolver = resolver or default_resolver()
    normalized = normalize_applicant(applicant, verification_results)
    derived = derive_report_model(normalized, resolver)
    return build_view_model(
        normalized,
        derived,
        client_name=config.client_name,
        generated_at=generated_at or datetime.now(),
    )


def compile_document(
    applicant: dict,
    verification_results: list,
    client_name: Optional[str] = None,
    logo_base64: Optional[str] = None,
    generated_at: Optional[datetime] = None,
    config: Optional[ReportConfig] = None,
    resolver: Optional[FlowRequirementResolver] = None,
) -> ReportDocument:
    """Run all four stages and return the laid-out, unencoded document."""
    config = (config or ReportConfig.from_env()).with_client(client_name)
    view_model = compile_report_context(
        applicant,
        verification_results,
        generated_at=generated_at,
        config=config,
        resolver=resolver,
    )
    return render_pdf(view_model, config=config, logo_base64=logo_base64)


def compile_report(
    applicant: dict,
    verification_results: list,
    client_name: Optional[str] = None,
    logo_base64: Optional[str] = None,
    generated_at: Optional[datetime] = None,
    config: Optional[ReportConfig] = None,
    resolver: Optional[FlowRequirementResolver] = None,
) -> bytes:
    """Run the full 4-stage report compiler and return PDF bytes.

    Stages:
      1. normalize  — tolerant field resolution, results indexed by type
      2. derive     — overall status, step rows, gated profile, findings
      3. view_model — ordered sections of layout blocks
      4. render_pdf — paginated document, encoded to bytes

    Parameters
    ----------
    applicant : dict
        Applicant record as returned by the backend.
    verification_results : list
        Verification-result records for the applicant.
    client_name : str, optional
        Attribution on the cover and footer (defaults to ``KR_CLIENT_NAME``).
    logo_base64 : str, optional
        PNG/JPEG logo for the header band; unusable data falls back to the
        text mark.

    Returns
    -------
    bytes
        The encoded PDF.

    Raises
    ------
    ReportSerializationError
        If the PDF encoder fails. Nothing else propagates.
    """
    started = time.monotonic()
    try:
        document = compile_document(
            applicant,
            verification_results,
            client_name=client_name,
            logo_base64=logo_base64,
            generated_at=generated_at,
            config=config,
            resolver=resolver,
        )
    except (UnicodeEncodeError, OSError) as e:
        logger.exception("Report layout failed")
        raise wrap_internal_exception(
            e, default_message=f"PDF serialization failed: {e}", fallback=ReportSerializationError
        ) from e

    data = document.to_bytes()
    logger.info(
        "Report compiled: %d page(s), %d bytes in %.1f ms",
        document.page_count, len(data), (time.monotonic() - started) * 1000,
    )
    return data


def report_filename(name: Optional[str], config: Optional[ReportConfig] = None) -> str:
    """``<prefix>-<safe-name>.pdf``; the name is reduced to ASCII alphanumerics and ``-``."""
    prefix = (config or ReportConfig.from_env()).report_prefix
    return f"{prefix}-{safe_filename_part(str(name) if name is not None else '')}.pdf"


def export_report(
    applicant: dict,
    verification_results: list,
    directory: Union[str, Path],
    client_name: Optional[str] = None,
    logo_base64: Optional[str] = None,
    generated_at: Optional[datetime] = None,
    config: Optional[ReportConfig] = None,
    resolver: Optional[FlowRequirementResolver] = None,
) -> Path:
    """Compile the report and write it into ``directory``.

    The file is written to a temporary sibling and renamed into place, so a
    failure never leaves a partial PDF behind.

    Returns:
        Path of the written file
    """
    config = config or ReportConfig.from_env()
    data = compile_report(
        applicant,
        verification_results,
        client_name=client_name,
        logo_base64=logo_base64,
        generated_at=generated_at,
        config=config,
        resolver=resolver,
    )
    subject = compile_subject_name(applicant)

    directory = Path(directory)
    target = directory / report_filename(subject, config)
    fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".kr-", suffix=".pdf.tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, target)
    except OSError as e:
        Path(tmp_name).unlink(missing_ok=True)
        raise wrap_internal_exception(
            e,
            default_message=f"Could not write report to {target}: {e}",
            details={"path": str(target)},
            fallback=ReportSerializationError,
        ) from e

    logger.info("Report written to %s", target)
    return target


def compile_subject_name(applicant: dict) -> str:
    """Display name the report is issued for (``Unknown`` when absent)."""
    return normalize_applicant(applicant, [])["full_name"]
