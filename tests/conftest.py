"""Shared pytest fixtures — applicant records and verification results."""

import base64
from datetime import datetime
from io import BytesIO

import pytest
from PIL import Image

from kycreport.config import ReportConfig
from kycreport.flows import FlowRequirementResolver


GENERATED_AT = datetime(2025, 1, 15, 10, 30)


@pytest.fixture
def resolver():
    """Resolver over the built-in catalog only (no env overlay)."""
    return FlowRequirementResolver()


@pytest.fixture
def config():
    """Default rendering config, independent of KR_* environment."""
    return ReportConfig()


@pytest.fixture
def generated_at():
    return GENERATED_AT


@pytest.fixture
def applicant():
    """EnhancedKYC applicant with every profile field populated."""
    return {
        "_id": "665f1c2e9b1e8a0012345678",
        "applicantIdRemote": "APP-1001",
        "firstName": "Jane",
        "lastName": "Doe",
        "email": "jane.doe@example.com",
        "phone": "+1 416 555 0100",
        "address": "1 Main St, Toronto, ON",
        "createdAt": "2025-01-10T08:15:00Z",
        "status": "PENDING",
        "flowName": "EnhancedKYC",
        "requiredVerifications": [
            {"verificationType": "phone", "status": "verified"},
            {"verificationType": "email", "status": "verified"},
            {"verificationType": "idDocument", "status": "verified"},
            {"verificationType": "selfie", "status": "verified"},
            {"verificationType": "proofOfAddress", "status": "pending"},
        ],
        "ip": "203.0.113.7",
        "geoLocation": {
            "country": "Canada",
            "regionName": "Ontario",
            "city": "Toronto",
            "latitude": 43.65,
            "longitude": -79.38,
            "timezone": "America/Toronto",
        },
    }


@pytest.fixture
def verification_results():
    """One result of every known type."""
    return [
        {
            "verificationType": "idDocument",
            "status": "verified",
            "createdAt": "2025-01-12T09:00:00Z",
            "processedData": {
                "documentInfo": {"documentType": "Passport", "documentNumber": "X1234567", "expiryStatus": "Valid"},
            },
            "rawResponse": {
                "resultData": {
                    "verificationResultDetails": {
                        "Decision_DocumentExpired": {"DecisionResult": "Pass"},
                        "Decision_FaceMatch": {"DecisionResult": "Pass"},
                        "Decision_MrzCheck": {"DecisionResult": "Fail"},
                    },
                },
                "status": {"ipAddress": "198.51.100.4"},
            },
        },
        {
            "verificationType": "selfie",
            "status": "verified",
            "createdAt": "2025-01-12T09:05:00Z",
            "processedData": {"result": "MATCH", "matchScore": 0, "livenessResult": "passed", "livenessScore": 97.5},
            "rawResponse": {},
        },
        {
            "verificationType": "phone",
            "status": "verified",
            "createdAt": "2025-01-11T12:00:00Z",
            "processedData": {},
            "rawResponse": {},
        },
        {
            "verificationType": "email",
            "status": "verified",
            "createdAt": "2025-01-11T12:01:00Z",
            "processedData": {},
            "rawResponse": {},
        },
        {
            "verificationType": "sanctionsCheck",
            "status": "verified",
            "createdAt": "2025-01-12T09:10:00Z",
            "processedData": {"sources": ["OFAC", "UN"]},
            "rawResponse": {},
        },
        {
            "verificationType": "riskEvaluation",
            "status": "verified",
            "createdAt": "2025-01-12T09:11:00Z",
            "processedData": {},
            "rawResponse": {"totalPoints": 12, "classification": "LOW", "recommendation": "Approve"},
        },
        {
            "verificationType": "proofOfAddress",
            "status": "pending",
            "createdAt": "2025-01-13T10:00:00Z",
            "processedData": {"billHolderName": "Jane Doe", "serviceAddress": "1 Main St", "provider": "Hydro One"},
            "rawResponse": {},
        },
    ]


@pytest.fixture
def logo_base64():
    """A tiny valid PNG, base64-encoded."""
    buffer = BytesIO()
    Image.new("RGB", (4, 2), (27, 12, 140)).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.fixture
def tall_results():
    """Results that push the report past one page."""
    checks = {
        f"Decision_Check{i:02d}Field": {"DecisionResult": "Pass" if i % 3 else "Fail"}
        for i in range(60)
    }
    return [
        {
            "verificationType": "idDocument",
            "status": "verified",
            "createdAt": "2025-01-12T09:00:00Z",
            "processedData": {},
            "rawResponse": {"resultData": {"verificationResultDetails": checks}},
        },
    ]
