"""ViewModel — Stage C of the Report Compiler Pipeline.

Merges NormalizedApplicant + DerivedReportModel into a ReportViewModel: the
cover block plus an ordered list of sections, each a list of layout blocks
(key/value rows, tables, subheadings). The PDF renderer lays these out
without knowing anything about verification semantics.

Responsibilities:
  - format dates, percentages and lists into display strings
  - map raw statuses onto labels and tones
  - fix section order and titles
  - NO page geometry
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Union

from ..formatting import MISSING_VALUE, fmt_date, fmt_day, fmt_percent, safe_str
from ..status import (
    OverallStatus,
    StatusTone,
    label_tone,
    overall_tone,
    status_label,
    status_tone,
)

DISCLAIMER = (
    "This report is generated from automated verification processes and is intended "
    "for authorized compliance personnel only. It does not constitute legal advice. "
    "Subjects included in this report do not necessarily pose actual risk. Further "
    "scrutiny may be appropriate based on the findings presented."
)

CONFIDENTIALITY_NOTICE = (
    "This report is confidential and intended for authorized personnel only."
)


# ── Blocks ───────────────────────────────────────────────────────────────────

@dataclass
class KeyValue:
    label: str
    value: str
    tone: Optional[StatusTone] = None
    bold: bool = False


@dataclass
class Subheading:
    text: str


@dataclass
class Spacer:
    height: float


@dataclass
class Table:
    """A grid table; ``plain`` tables have no header row (label/value listings)."""
    headers: list[str]
    rows: list[list[str]]
    widths: list[float]
    status_column: Optional[int] = None
    row_tones: list[Optional[StatusTone]] = field(default_factory=list)
    plain: bool = False
    font_size: float = 9


Block = Union[KeyValue, Subheading, Spacer, Table]


@dataclass
class Section:
    title: str
    blocks: list[Block]
    min_space: float = 20


@dataclass
class Cover:
    full_name: str
    inspection_line: str
    client_line: str
    overall_status: OverallStatus
    status_text: str
    status_tone: StatusTone


@dataclass
class ReportViewModel:
    subject_name: str
    generated_at: datetime
    client_name: str
    cover: Cover
    sections: list[Section]
    disclaimer: str = DISCLAIMER


def build_view_model(
    normalized: dict,
    derived: dict,
    client_name: str,
    generated_at: datetime,
) -> ReportViewModel:
    """Build the final view model consumed by the renderer."""
    overall: OverallStatus = derived["overall_status"]
    cover = Cover(
        full_name=normalized["full_name"],
        inspection_line=f"Inspection report for {fmt_day(generated_at)}",
        client_line=f"Created for {client_name}",
        overall_status=overall,
        status_text=overall.label,
        status_tone=overall_tone(overall),
    )

    sections = [
        _profile_section(derived["profile"]),
    ]
    steps = _steps_section(derived["step_rows"])
    if steps is not None:
        sections.append(steps)
    sections.extend(_findings_sections(derived["findings"]))
    if derived["location"] is not None:
        sections.append(_location_section(derived["location"]))

    return ReportViewModel(
        subject_name=normalized["full_name"],
        generated_at=generated_at,
        client_name=client_name,
        cover=cover,
        sections=sections,
    )


# ── Cover sections ───────────────────────────────────────────────────────────

def _profile_section(profile: dict) -> Section:
    return Section("Profile Data", [
        KeyValue("Applicant ID:", safe_str(profile["applicant_id"])),
        KeyValue("Full Name:", safe_str(profile["full_name"])),
        KeyValue("Email:", profile["email"]),
        KeyValue("Phone:", profile["phone"]),
        KeyValue("Address:", profile["address"]),
        KeyValue("Profile Created:", fmt_date(profile["created_at"])),
        KeyValue("Verification Flow:", safe_str(profile["flow_label"])),
        Spacer(4),
    ], min_space=14)


def _steps_section(step_rows: list[dict]) -> Optional[Section]:
    if not step_rows:
        return None
    rows, tones = [], []
    for row in step_rows:
        label = status_label(row["status"])
        rows.append([row["label"], label])
        tones.append(label_tone(label))
    return Section("Verification Steps", [
        Table(["Step", "Status"], rows, [70, 40], status_column=1, row_tones=tones),
        Spacer(8),
    ], min_space=14)


# ── Key findings ─────────────────────────────────────────────────────────────

def _findings_sections(findings: dict) -> list[Section]:
    key_findings = Section("Key Findings", [], min_space=40)
    sections = [key_findings]

    checks = findings["document_checks"]
    if checks:
        if _unavailable(checks):
            key_findings.blocks += [Subheading("Document Review"), _unavailable_row()]
        else:
            key_findings.blocks += [
                Subheading("Document Review"),
                Table(
                    ["Check", "Result"],
                    [[label, safe_str(result)] for label, result in checks],
                    [70, 30],
                    status_column=1,
                    row_tones=[status_tone(result) for _, result in checks],
                    font_size=8,
                ),
                Spacer(6),
            ]

    info = findings["document_info"]
    if info:
        blocks: list[Block]
        if _unavailable(info):
            blocks = [_unavailable_row()]
        else:
            blocks = [
                Table(
                    [],
                    [[label, safe_str(value)] for label, value in info],
                    [55, 0],
                    status_column=1,
                    row_tones=[_document_value_tone(value) for _, value in info],
                    plain=True,
                ),
                Spacer(6),
            ]
        sections.append(Section("ID Document Information", blocks))

    builders = (
        ("face", "Face Verification", _face_blocks),
        ("aml", "AML / Sanctions Screening", _aml_blocks),
        ("risk", "Risk Assessment", _risk_blocks),
        ("poa", "Proof of Address", _poa_blocks),
    )

    contact = _contact_blocks(findings["phone"], findings["email"])
    for key, title, builder in builders:
        if key == "aml" and contact:
            sections.append(Section("Contact Verification", contact))
        data = findings[key]
        if data is None:
            continue
        blocks = [_unavailable_row()] if _unavailable(data) else builder(data)
        sections.append(Section(title, blocks + [Spacer(4)]))
    return sections


def _face_blocks(face: dict) -> list[Block]:
    return [
        KeyValue("Face Match Result:", safe_str(face["match_result"]),
                 tone=status_tone(face["match_result"]), bold=True),
        KeyValue("Match Confidence:", fmt_percent(face["match_score"])),
        KeyValue("Liveness Check:", safe_str(face["liveness_result"]),
                 tone=status_tone(face["liveness_result"]), bold=True),
        KeyValue("Liveness Score:", fmt_percent(face["liveness_score"])),
        KeyValue("Checked At:", fmt_date(face["checked_at"])),
    ]


def _contact_blocks(phone: Optional[dict], email: Optional[dict]) -> list[Block]:
    blocks: list[Block] = []
    for data, check_label, value_label in (
        (phone, "Phone Check:", "Phone Number:"),
        (email, "Email Check:", "Email Address:"),
    ):
        if data is None:
            continue
        label = status_label(data.get("status"))
        blocks.append(KeyValue(check_label, label, tone=status_tone(data.get("status")), bold=True))
        if _unavailable(data):
            continue
        blocks += [
            KeyValue(value_label, data["value"]),
            KeyValue("Verified At:", fmt_date(data["verified_at"])),
            Spacer(2),
        ]
    return blocks


def _aml_blocks(aml: dict) -> list[Block]:
    match_status = aml["match_status"]
    match_tone = StatusTone.POSITIVE if match_status == "NO_MATCH" else StatusTone.NEGATIVE
    blocks: list[Block] = [
        KeyValue("Screening Result:", safe_str(aml["screening_result"]),
                 tone=status_tone(aml["screening_result"]), bold=True),
        KeyValue("Match Status:", safe_str(match_status), tone=match_tone, bold=True),
    ]
    if aml["sources"]:
        blocks.append(KeyValue("Data Sources:", safe_str(aml["sources"])))
    if aml["warning_types"]:
        blocks.append(KeyValue("Warning Types:", safe_str(aml["warning_types"])))
    blocks.append(KeyValue("Checked At:", fmt_date(aml["checked_at"])))
    return blocks


def _risk_blocks(risk: dict) -> list[Block]:
    return [
        KeyValue("Risk Score:", safe_str(risk["score"]), bold=True),
        KeyValue("Risk Level:", safe_str(risk["level"]), tone=status_tone(risk["level"]), bold=True),
        KeyValue("Recommended Action:", safe_str(risk["action"])),
        KeyValue("Assessed At:", fmt_date(risk["assessed_at"])),
    ]


def _poa_blocks(poa: dict) -> list[Block]:
    blocks: list[Block] = [
        KeyValue("PoA Status:", status_label(poa["status"]),
                 tone=status_tone(poa["status"]), bold=True),
    ]
    for key, label in (
        ("bill_holder", "Bill Holder:"),
        ("service_address", "Service Address:"),
        ("account_number", "Account Number:"),
        ("provider", "Provider:"),
    ):
        if poa[key] is not None:
            blocks.append(KeyValue(label, safe_str(poa[key])))
    blocks.append(KeyValue("Checked At:", fmt_date(poa["checked_at"])))
    return blocks


# ── Location ─────────────────────────────────────────────────────────────────

def _location_section(location: dict) -> Section:
    blocks: list[Block] = []
    if location["ip"] is not None:
        blocks.append(KeyValue("IP Address:", safe_str(location["ip"])))
    for key, label in (("country", "Country:"), ("region", "Region:"), ("city", "City:")):
        if location[key] is not None:
            blocks.append(KeyValue(label, safe_str(location[key])))
    if location["latitude"] is not None and location["longitude"] is not None:
        blocks.append(KeyValue("Coordinates:", f"{location['latitude']}, {location['longitude']}"))
    if location["timezone"] is not None:
        blocks.append(KeyValue("Timezone:", safe_str(location["timezone"])))
    blocks.append(Spacer(4))
    return Section("Location & IP Data", blocks)


# ── Helpers ──────────────────────────────────────────────────────────────────

def _unavailable(data: Any) -> bool:
    return isinstance(data, dict) and data.get("unavailable") is True


def _unavailable_row() -> KeyValue:
    return KeyValue("Details:", MISSING_VALUE)


_DOC_POSITIVE = frozenset({"valid", "yes"})
_DOC_NEGATIVE = frozenset({"invalid", "no", "expired"})


def _document_value_tone(value: Any) -> Optional[StatusTone]:
    key = str(value).strip().lower()
    if key in _DOC_POSITIVE:
        return StatusTone.POSITIVE
    if key in _DOC_NEGATIVE:
        return StatusTone.NEGATIVE
    return None
