"""Report router — endpoints only.

Pipeline: request → compile_report → PDF attachment.
Router contains zero business logic.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict
from starlette.concurrency import run_in_threadpool

from ...exceptions import ReportSerializationError
from ...report import compile_report, report_filename
from ...report.pipeline import compile_subject_name

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/report", tags=["Report"])


class ReportRequest(BaseModel):
    """Report export request; applicant and results are passed through as-is."""
    model_config = ConfigDict(extra="allow")

    applicant: Dict[str, Any]
    verification_results: List[Dict[str, Any]] = []
    client_name: Optional[str] = None
    logo_base64: Optional[str] = None


# ── PDF ──────────────────────────────────────────────────────────────────────

@router.post("/pdf")
async def export_pdf(request: Request, body: ReportRequest):
    """Compile and download the verification report as a PDF file."""
    request_id = getattr(request.state, "request_id", None)
    try:
        pdf = await run_in_threadpool(
            compile_report,
            body.applicant,
            body.verification_results,
            client_name=body.client_name,
            logo_base64=body.logo_base64,
        )
    except ReportSerializationError as e:
        e.request_id = request_id
        logger.error("Report export failed: %s", e, extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail=e.to_dict())

    filename = report_filename(compile_subject_name(body.applicant))
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
        },
    )
