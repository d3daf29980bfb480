"""
Configuration for report rendering and the flow catalog.

Environment variables are read once at import time, in the same way the
service reads its ``KR_*`` settings. ``ReportConfig`` carries the rendering
knobs so that library callers can override them without touching the
environment.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

# =============================================================================
# Environment
# =============================================================================

KR_ORG_NAME = os.getenv("KR_ORG_NAME", "NOBIS")
KR_CLIENT_NAME = os.getenv("KR_CLIENT_NAME", "NOBIS KYC")
KR_REPORT_PREFIX = os.getenv("KR_REPORT_PREFIX", "NOBIS-Verification-Report")
KR_FLOW_CATALOG = os.getenv("KR_FLOW_CATALOG") or None
KR_FONT_DIR = os.getenv("KR_FONT_DIR") or None
KR_LOG_LEVEL = os.getenv("KR_LOG_LEVEL", "INFO")
KR_HOST = os.getenv("KR_HOST", "0.0.0.0")
KR_PORT = int(os.getenv("KR_PORT", "8000"))


# =============================================================================
# Report configuration
# =============================================================================

@dataclass(frozen=True)
class ReportConfig:
    """Configuration for report rendering (A4 portrait, millimetres)."""
    org_name: str = "NOBIS"
    client_name: str = "NOBIS KYC"
    report_title: str = "VERIFICATION REPORT"
    report_prefix: str = "NOBIS-Verification-Report"
    margin: float = 18.0
    header_height: float = 22.0
    content_top: float = 30.0
    first_page_top: float = 32.0
    bottom_limit: float = 20.0
    font_dir: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "ReportConfig":
        return cls(
            org_name=KR_ORG_NAME,
            client_name=KR_CLIENT_NAME,
            report_prefix=KR_REPORT_PREFIX,
            font_dir=Path(KR_FONT_DIR) if KR_FONT_DIR else None,
        )

    def with_client(self, client_name: Optional[str]) -> "ReportConfig":
        """Return a copy attributed to ``client_name`` (unchanged when empty)."""
        if not client_name:
            return self
        return replace(self, client_name=client_name)
