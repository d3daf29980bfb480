"""Derive — Stage B of the Report Compiler Pipeline.

Computes everything the report states but the backend does not store:

- overall status (rule chain over step outcomes, never the stored status)
- verification-step rows for the flow
- flow-gated profile values (phone / email / address)
- per-check findings, extracted with processedData -> rawResponse fallbacks

Input:  NormalizedApplicant + FlowRequirementResolver
Output: DerivedReportModel (plain dict)

Missing or malformed nested data never raises out of this stage: values
degrade to None (rendered as the placeholder) and a check whose extractor
fails is reported as unavailable instead of aborting the report.
"""

import logging
from typing import Any, Callable, Optional

from ..exceptions import MissingDataError
from ..flows import Field, FlowRequirementResolver, STEP_LABELS, Step
from ..formatting import as_dict, as_list, dig, first_present, humanize_key
from ..status import OverallStatus, StepState, derive_overall_status

logger = logging.getLogger(__name__)


def derive_report_model(normalized: dict, resolver: FlowRequirementResolver) -> dict:
    """Build the derived model consumed by the view-model stage."""
    flow_name = normalized["flow_name"]
    flow = resolver.definition(flow_name)
    results = normalized["results"]

    # ── Steps + overall status ────────────────────────────────────────────
    step_rows = _step_rows(normalized, flow.required_steps)
    overall_status = _overall(step_rows)
    stored = normalized["stored_status"]
    if stored and str(stored).upper() != overall_status.value:
        logger.info(
            "Stored applicant status %s differs from derived %s; report uses derived",
            stored, overall_status.value,
        )

    # ── Flow-gated profile values ─────────────────────────────────────────
    def gated(field: Field, value: Any) -> str:
        return resolver.display_value(flow_name, field, value)

    profile = {
        "applicant_id": normalized["applicant_id"],
        "full_name": normalized["full_name"],
        "email": gated(Field.EMAIL, normalized["email"]),
        "phone": gated(Field.PHONE, normalized["phone"]),
        "address": gated(Field.ADDRESS, normalized["address"]),
        "created_at": normalized["created_at"],
        "flow_label": normalized["flow_label"],
    }

    # ── Per-check findings ────────────────────────────────────────────────
    idv = results.get("idDocument")

    def phone_check(result: dict) -> dict:
        return _contact(result, profile["phone"])

    def email_check(result: dict) -> dict:
        return _contact(result, profile["email"])

    def poa_check(result: dict) -> dict:
        return _poa(result, lambda value: gated(Field.ADDRESS, value))

    findings = {
        "document_checks": _guarded("idDocument", _document_checks, idv),
        "document_info": _guarded("idDocument", _document_info, idv),
        "face": _guarded("selfie", _face, results.get("selfie")),
        "phone": _guarded("phone", phone_check, results.get("phone")),
        "email": _guarded("email", email_check, results.get("email")),
        "aml": _guarded("sanctionsCheck", _aml, results.get("sanctionsCheck")),
        "risk": _guarded("riskEvaluation", _risk, results.get("riskEvaluation")),
        "poa": _guarded("proofOfAddress", poa_check, results.get("proofOfAddress")),
    }

    return {
        "flow": flow,
        "overall_status": overall_status,
        "step_rows": step_rows,
        "profile": profile,
        "findings": findings,
        "location": _location(normalized["location"], idv),
    }


# ── Steps ────────────────────────────────────────────────────────────────────

def _step_rows(normalized: dict, required_steps: tuple) -> list[dict]:
    """Rows for the Verification Steps table.

    A non-empty ``requiredVerifications`` list wins. Otherwise the flow's steps
    are listed with their state from the ``steps`` map; steps in state ``na``
    are listed but do not count toward the overall status.
    """
    required = normalized["required_verifications"]
    if required:
        rows = []
        for entry in required:
            step = Step.parse(entry["verification_type"])
            label = STEP_LABELS[step] if step else (entry["verification_type"] or "Unknown")
            rows.append({"label": label, "status": entry["status"], "counted": True})
        return rows

    states: dict[Step, StepState] = {}
    for key, value in normalized["steps"].items():
        step = Step.parse(key)
        if step is not None:
            states[step] = StepState.parse(value)

    rows = []
    for step in required_steps:
        state = states.get(step, StepState.NA)
        rows.append({
            "label": STEP_LABELS[step],
            "status": state.value,
            "counted": state is not StepState.NA,
        })
    return rows


# ── Guard ────────────────────────────────────────────────────────────────────

UNAVAILABLE = {"unavailable": True}


def _guarded(check_type: str, extractor: Callable[[dict], Any], result: Optional[dict]) -> Any:
    """Run one extractor; absent result -> None, malformed data -> UNAVAILABLE."""
    if result is None:
        logger.debug("No %s result; section omitted", check_type)
        return None
    try:
        return extractor(result)
    except (MissingDataError, TypeError, ValueError, AttributeError) as e:
        logger.warning("Could not extract %s findings: %s", check_type, e)
        return dict(UNAVAILABLE, status=result.get("status"))


# ── Document review ──────────────────────────────────────────────────────────

def _decision_result(entry: Any) -> Any:
    if not isinstance(entry, dict) or "DecisionResult" not in entry:
        raise MissingDataError("Entry has no DecisionResult")
    return entry["DecisionResult"]


def _document_checks(result: dict) -> list[tuple[str, Any]]:
    details = as_dict(dig(result["raw"], "resultData", "verificationResultDetails"))
    checks: list[tuple[str, Any]] = []
    for key, entry in details.items():
        try:
            checks.append((humanize_key(str(key)), _decision_result(entry)))
        except MissingDataError:
            continue
    if not checks:
        detailed = as_dict(result["processed"].get("detailedChecks"))
        checks = [(str(key), value) for key, value in detailed.items()]
    return checks


_ID_DATA_FIELDS = (
    ("idType", "ID Type"),
    ("idNumber", "ID Number"),
    ("idCountry", "ID Country"),
    ("idDateOfBirth", "Date of Birth"),
    ("idExpirationDate", "Expiration Date"),
    ("nationality", "Nationality"),
)


def _document_info(result: dict) -> list[tuple[str, Any]]:
    info = result["processed"].get("documentInfo")
    if isinstance(info, dict):
        return [
            (humanize_key(str(key)), value)
            for key, value in info.items()
            if isinstance(value, (str, int, float, bool))
        ]
    id_data = as_dict(dig(result["raw"], "responseCustomerData", "extractedIdData"))
    return [
        (label, id_data[key])
        for key, label in _ID_DATA_FIELDS
        if first_present(id_data.get(key)) is not None
    ]


# ── Face ─────────────────────────────────────────────────────────────────────

def _face(result: dict) -> dict:
    fp, fr = result["processed"], result["raw"]
    return {
        "match_result": first_present(
            fp.get("result"), fp.get("matchResult"), dig(fr, "resultData", "verificationResult"),
        ),
        "match_score": first_present(
            fp.get("matchScore"), fp.get("score"), fp.get("confidence"),
            dig(fr, "resultData", "matchScore"),
        ),
        "liveness_result": first_present(
            fp.get("livenessResult"), dig(fp, "liveness", "result"),
            dig(fr, "resultData", "livenessResult"),
        ),
        "liveness_score": first_present(
            fp.get("livenessScore"), dig(fp, "liveness", "score"),
            dig(fr, "resultData", "livenessScore"),
        ),
        "checked_at": result["created_at"],
    }


# ── Contact ──────────────────────────────────────────────────────────────────

def _contact(result: dict, display_value: str) -> dict:
    return {
        "status": result["status"],
        "value": display_value,
        "verified_at": result["created_at"],
    }


# ── AML / Sanctions ──────────────────────────────────────────────────────────

def _aml(result: dict) -> dict:
    ap, ar = result["processed"], result["raw"]
    return {
        "screening_result": first_present(ap.get("status"), ar.get("status")) or "CLEAR",
        "match_status": first_present(ap.get("matchStatus"), ar.get("matchStatus")) or "NO_MATCH",
        "sources": as_list(first_present(ap.get("sources"), ar.get("sources"))),
        "warning_types": as_list(first_present(ap.get("warningTypes"), ar.get("warningTypes"))),
        "checked_at": result["created_at"],
    }


# ── Risk ─────────────────────────────────────────────────────────────────────

def _risk(result: dict) -> dict:
    rp, rr = result["processed"], result["raw"]
    return {
        "score": first_present(rp.get("score"), rp.get("riskScore"), rr.get("totalPoints")),
        "level": first_present(rp.get("level"), rp.get("riskLevel"), rr.get("classification")),
        "action": first_present(
            rp.get("recommendedAction"), rp.get("recommendation"), rr.get("recommendation"),
        ),
        "assessed_at": result["created_at"],
    }


# ── Proof of address ─────────────────────────────────────────────────────────

def _poa(result: dict, gate_address: Callable[[Any], str]) -> dict:
    pp, pr = result["processed"], result["raw"]

    def pick(key: str) -> Any:
        return first_present(pp.get(key), pr.get(key))

    service_address = pick("serviceAddress")
    return {
        "status": result["status"],
        "bill_holder": pick("billHolderName"),
        "service_address": gate_address(service_address) if service_address is not None else None,
        "account_number": pick("accountNumber"),
        "provider": pick("provider"),
        "checked_at": result["created_at"],
    }


# ── Location ─────────────────────────────────────────────────────────────────

def _location(location: dict, idv: Optional[dict]) -> Optional[dict]:
    ip = first_present(
        location["ip"],
        dig(idv["raw"], "status", "ipAddress") if idv else None,
    )
    geo_keys = ("country", "region", "city", "latitude", "longitude", "timezone")
    if ip is None and all(location[key] is None for key in geo_keys):
        return None
    return {"ip": ip, **{key: location[key] for key in geo_keys}}


def overall_status_of(normalized: dict, resolver: FlowRequirementResolver) -> OverallStatus:
    """Overall status alone (no report), for list views and the service."""
    flow = resolver.definition(normalized["flow_name"])
    return _overall(_step_rows(normalized, flow.required_steps))


def _overall(step_rows: list[dict]) -> OverallStatus:
    return derive_overall_status(row["status"] for row in step_rows if row["counted"])
