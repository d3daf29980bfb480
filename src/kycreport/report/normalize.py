"""Normalize — Stage A of the Report Compiler Pipeline.

Turns the raw applicant record and verification-result list (as returned by
the backend) into a predictable, guaranteed-shape dict.
Pure data, no formatting strings, no visibility rules.

Input:  applicant dict + list of verification-result dicts
Output: NormalizedApplicant (plain dict with guaranteed keys / shapes)
"""

import logging

from ..flows import applicant_flow_label, applicant_flow_name
from ..formatting import as_dict, as_list, first_present, safe_str

logger = logging.getLogger(__name__)

# Verification types with a report section, in extraction order
KNOWN_CHECK_TYPES = (
    "idDocument",
    "selfie",
    "phone",
    "email",
    "proofOfAddress",
    "sanctionsCheck",
    "riskEvaluation",
)


def normalize_applicant(applicant: dict, verification_results: list) -> dict:
    """Turn raw inputs into a stable, guaranteed-shape dict.

    Responsibilities:
    - resolve display name, identifier and flow name across record shapes
    - normalize requiredVerifications / steps into consistent shapes
    - index verification results by type (first occurrence wins)
    - extract location data with safe defaults
    - NO labels, NO dates formatted, NO visibility decisions
    """
    applicant = as_dict(applicant)

    # ── Identity ──────────────────────────────────────────────────────────
    full_name = first_present(
        applicant.get("name"),
        " ".join(
            part for part in (applicant.get("firstName"), applicant.get("lastName"))
            if isinstance(part, str) and part.strip()
        ),
        applicant.get("fullName"),
    )
    applicant_id = first_present(
        applicant.get("applicantIdRemote"),
        applicant.get("_id"),
        applicant.get("id"),
    )

    # ── Flow ──────────────────────────────────────────────────────────────
    flow_label = applicant_flow_label(applicant)

    # ── Required verifications / step map ─────────────────────────────────
    required_raw = applicant.get("requiredVerifications")
    required_verifications = None
    if isinstance(required_raw, list):
        required_verifications = [
            {
                "verification_type": str(entry.get("verificationType") or ""),
                "status": entry.get("status"),
            }
            for entry in required_raw
            if isinstance(entry, dict)
        ]

    # ── Results (indexed by type) ─────────────────────────────────────────
    results: dict[str, dict] = {}
    for entry in as_list(verification_results):
        if not isinstance(entry, dict):
            logger.debug("Skipping non-dict verification result: %r", type(entry).__name__)
            continue
        check_type = entry.get("verificationType")
        if check_type not in KNOWN_CHECK_TYPES or check_type in results:
            continue
        results[check_type] = {
            "verification_type": check_type,
            "status": entry.get("status"),
            "processed": as_dict(entry.get("processedData")),
            "raw": as_dict(entry.get("rawResponse")),
            "created_at": entry.get("createdAt"),
        }

    # ── Location ──────────────────────────────────────────────────────────
    geo = as_dict(applicant.get("geoLocation"))
    location = {
        "ip": first_present(applicant.get("ip"), applicant.get("ipAddress")),
        "country": first_present(geo.get("country"), applicant.get("country")),
        "region": first_present(geo.get("region"), geo.get("regionName"), applicant.get("region")),
        "city": first_present(geo.get("city"), applicant.get("city")),
        "latitude": geo.get("latitude"),
        "longitude": geo.get("longitude"),
        "timezone": geo.get("timezone"),
    }

    return {
        # Identity
        "full_name": safe_str(full_name) if full_name is not None else "Unknown",
        "applicant_id": applicant_id,
        "email": applicant.get("email"),
        "phone": applicant.get("phone"),
        "address": applicant.get("address"),
        "created_at": applicant.get("createdAt"),
        "stored_status": applicant.get("status"),

        # Flow
        "flow_label": flow_label,
        "flow_name": applicant_flow_name(applicant),

        # Steps
        "required_verifications": required_verifications,
        "steps": as_dict(applicant.get("steps")),

        # Results
        "results": results,

        # Location
        "location": location,
    }
