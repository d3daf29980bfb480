"""
Flow requirements: which verification steps each onboarding flow requires,
and which PII fields a flow is allowed to display.

The flow table is configuration, not logic. ``DEFAULT_FLOW_TABLE`` is the
built-in catalog; a YAML overlay (``KR_FLOW_CATALOG`` or an explicit path)
adds or replaces entries. Every consumer (report compiler, service, review
screens) receives the same ``FlowCatalog`` through a ``FlowRequirementResolver``.

Resolution is total: an unknown, empty or missing flow name resolves to the
``Default`` flow, so every applicant has a step set.

Usage:
    resolver = FlowRequirementResolver()
    resolver.required_steps("SimpleKYC")
    resolver.is_visible("SimpleKYC", Field.ADDRESS)        # False
    resolver.display_value("SimpleKYC", "address", "1 Main St")
    # -> "Not collected (flow)"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

import yaml

from .config import KR_FLOW_CATALOG
from .exceptions import FlowCatalogError, UnknownFlowError
from .formatting import MISSING_VALUE, first_present
from .status import StepState

logger = logging.getLogger(__name__)

DEFAULT_FLOW = "Default"
NOT_COLLECTED = "Not collected (flow)"
NOT_UPLOADED = "Not uploaded"


# =============================================================================
# ENUMS
# =============================================================================

class Step(str, Enum):
    """Verification step types a flow can require."""
    PHONE = "phone"
    EMAIL = "email"
    ID_DOCUMENT = "idDocument"
    SELFIE = "selfie"
    PROOF_OF_ADDRESS = "proofOfAddress"

    @classmethod
    def parse(cls, value: Any) -> Optional["Step"]:
        """Accept canonical names plus the short keys used by the review screens."""
        if isinstance(value, Step):
            return value
        if not isinstance(value, str):
            return None
        return _STEP_ALIASES.get(value.strip())


_STEP_ALIASES: dict[str, Step] = {
    **{step.value: step for step in Step},
    "idDoc": Step.ID_DOCUMENT,
    "poa": Step.PROOF_OF_ADDRESS,
}

# Module keys stored on backend flow records -> steps
MODULE_STEPS: dict[str, Step] = {
    "identity_document": Step.ID_DOCUMENT,
    "selfie": Step.SELFIE,
    "email_verification": Step.EMAIL,
    "phone_verification": Step.PHONE,
    "poa_verification": Step.PROOF_OF_ADDRESS,
}

STEP_LABELS: dict[Step, str] = {
    Step.PHONE: "Phone",
    Step.EMAIL: "Email",
    Step.ID_DOCUMENT: "ID Document",
    Step.SELFIE: "Selfie / Face",
    Step.PROOF_OF_ADDRESS: "Proof of Address",
}


class Field(str, Enum):
    """PII / evidence fields whose display depends on the flow."""
    PHONE = "phone"
    EMAIL = "email"
    ADDRESS = "address"
    ID_DOC = "idDoc"
    SELFIE = "selfie"

    @classmethod
    def parse(cls, value: Any) -> "Field":
        if isinstance(value, Field):
            return value
        return cls(value)


# Address is gated by the proof-of-address step, not by a separate step.
FIELD_STEPS: Mapping[Field, Step] = MappingProxyType({
    Field.PHONE: Step.PHONE,
    Field.EMAIL: Step.EMAIL,
    Field.ADDRESS: Step.PROOF_OF_ADDRESS,
    Field.ID_DOC: Step.ID_DOCUMENT,
    Field.SELFIE: Step.SELFIE,
})


# =============================================================================
# FLOW DEFINITIONS
# =============================================================================

ALL_STEPS = (
    Step.PHONE, Step.EMAIL, Step.ID_DOCUMENT, Step.SELFIE, Step.PROOF_OF_ADDRESS,
)

DEFAULT_FLOW_TABLE: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "Default": ("phone", "email", "idDocument", "selfie", "proofOfAddress"),
    "SimpleKYC": ("phone", "email", "idDocument", "selfie"),
    "EnhancedKYC": ("phone", "email", "idDocument", "selfie", "proofOfAddress"),
    "PoA Required": ("phone", "email", "idDocument", "selfie", "proofOfAddress"),
    "BASIC_IDV": ("idDocument", "selfie"),
    "SIM_REGISTRATION": ("phone", "idDocument", "selfie"),
})


@dataclass(frozen=True)
class FlowDefinition:
    """A named flow and the ordered steps it requires."""
    name: str
    required_steps: tuple[Step, ...]

    @classmethod
    def from_steps(cls, name: str, steps: Iterable[Any]) -> "FlowDefinition":
        parsed: list[Step] = []
        for raw in steps:
            step = Step.parse(raw)
            if step is None:
                raise FlowCatalogError(
                    f"Flow '{name}' lists unknown step {raw!r}",
                    details={"flow": name, "step": str(raw)},
                )
            if step not in parsed:
                parsed.append(step)
        if not parsed:
            raise FlowCatalogError(
                f"Flow '{name}' must require at least one step",
                details={"flow": name},
            )
        return cls(name=name, required_steps=tuple(parsed))

    @classmethod
    def from_modules(cls, name: str, modules: Iterable[Any]) -> "FlowDefinition":
        """Build from a backend flow record's modules.

        ``modules`` holds module keys, or ``{"module_key": ..., "enabled": ...}``
        records; disabled modules are skipped. Steps keep catalog order.
        """
        enabled: set[Step] = set()
        for module in modules:
            if isinstance(module, dict):
                if not module.get("enabled", True):
                    continue
                key = module.get("module_key")
            else:
                key = module
            step = MODULE_STEPS.get(key) if isinstance(key, str) else None
            if step is None:
                raise FlowCatalogError(
                    f"Flow '{name}' references unknown module {key!r}",
                    details={"flow": name, "module_key": str(key)},
                )
            enabled.add(step)
        return cls.from_steps(name, [step for step in ALL_STEPS if step in enabled])

    def requires(self, step: Step) -> bool:
        return step in self.required_steps

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "required_steps": [step.value for step in self.required_steps],
        }


class FlowCatalog:
    """Immutable mapping of flow name -> FlowDefinition, always holding Default."""

    def __init__(self, definitions: Iterable[FlowDefinition]) -> None:
        table: dict[str, FlowDefinition] = {}
        for definition in definitions:
            table[definition.name] = definition
        if DEFAULT_FLOW not in table:
            raise FlowCatalogError(
                f"Flow catalog must define '{DEFAULT_FLOW}'",
                details={"flows": sorted(table)},
            )
        self._flows: Mapping[str, FlowDefinition] = MappingProxyType(table)

    @classmethod
    def from_table(cls, table: Mapping[str, Iterable[Any]]) -> "FlowCatalog":
        return cls(FlowDefinition.from_steps(name, steps) for name, steps in table.items())

    @classmethod
    def default(cls) -> "FlowCatalog":
        return cls.from_table(DEFAULT_FLOW_TABLE)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._flows)

    @property
    def fallback(self) -> FlowDefinition:
        return self._flows[DEFAULT_FLOW]

    def get(self, name: Optional[str], strict: bool = False) -> FlowDefinition:
        """Look up a flow; unknown names fall back to Default unless ``strict``."""
        definition = self._flows.get(name) if isinstance(name, str) else None
        if definition is not None:
            return definition
        if strict:
            raise UnknownFlowError(
                f"Flow '{name}' is not configured",
                details={"flow": name, "known": list(self._flows)},
            )
        return self.fallback

    def merged(self, definitions: Iterable[FlowDefinition]) -> "FlowCatalog":
        """Return a new catalog with ``definitions`` added or replacing entries."""
        return FlowCatalog([*self._flows.values(), *definitions])

    def with_modules(self, name: str, modules: Iterable[Any]) -> "FlowCatalog":
        return self.merged([FlowDefinition.from_modules(name, modules)])

    def to_dict(self) -> dict[str, list[str]]:
        return {
            name: [step.value for step in definition.required_steps]
            for name, definition in self._flows.items()
        }

    def __contains__(self, name: object) -> bool:
        return name in self._flows

    def __len__(self) -> int:
        return len(self._flows)


# =============================================================================
# CATALOG LOADING
# =============================================================================

def load_flow_catalog(
    path: Optional[str | Path] = None,
    base: Optional[FlowCatalog] = None,
) -> FlowCatalog:
    """
    Load the flow catalog, overlaying a YAML file on the built-in table.

    The YAML document must contain a ``flows`` mapping. Each entry is either
    a list of steps or a mapping with ``steps`` or ``modules``:

        flows:
          Payroll: [idDocument, selfie]
          Marketplace:
            modules: [identity_document, selfie, phone_verification]

    Args:
        path: YAML overlay; defaults to ``KR_FLOW_CATALOG`` (none -> built-in only)
        base: Catalog to overlay (defaults to the built-in table)

    Raises:
        FlowCatalogError: If the file is missing, malformed, or invalid
    """
    catalog = base or FlowCatalog.default()
    path = path or KR_FLOW_CATALOG
    if not path:
        return catalog

    path = Path(path)
    if not path.exists():
        raise FlowCatalogError(f"Flow catalog file not found: {path}", details={"path": str(path)})

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise FlowCatalogError(f"Invalid YAML: {e}", details={"path": str(path)}) from e

    definitions = parse_flow_overlay(data)
    logger.info("Loaded %d flow definition(s) from %s", len(definitions), path)
    return catalog.merged(definitions)


def parse_flow_overlay(data: Any) -> list[FlowDefinition]:
    """Validate a decoded overlay document and return its definitions."""
    if not isinstance(data, dict) or not isinstance(data.get("flows"), dict):
        raise FlowCatalogError("Flow catalog must be a YAML mapping with a 'flows' section")

    definitions: list[FlowDefinition] = []
    for name, entry in data["flows"].items():
        name = str(name)
        if isinstance(entry, list):
            definitions.append(FlowDefinition.from_steps(name, entry))
        elif isinstance(entry, dict) and isinstance(entry.get("steps"), list):
            definitions.append(FlowDefinition.from_steps(name, entry["steps"]))
        elif isinstance(entry, dict) and isinstance(entry.get("modules"), list):
            definitions.append(FlowDefinition.from_modules(name, entry["modules"]))
        else:
            raise FlowCatalogError(
                f"Flow '{name}' must be a list of steps or a mapping with 'steps' or 'modules'",
                details={"flow": name},
            )
    return definitions


# =============================================================================
# RESOLVER
# =============================================================================

class FlowRequirementResolver:
    """Answers step and field-visibility questions for any flow name.

    Pure: no state beyond the injected, immutable catalog.
    """

    def __init__(self, catalog: Optional[FlowCatalog] = None) -> None:
        self.catalog = catalog or FlowCatalog.default()

    def definition(self, flow_name: Optional[str]) -> FlowDefinition:
        return self.catalog.get(flow_name)

    def required_steps(self, flow_name: Optional[str]) -> tuple[Step, ...]:
        return self.catalog.get(flow_name).required_steps

    def is_visible(self, flow_name: Optional[str], field: Field | str) -> bool:
        step = FIELD_STEPS[Field.parse(field)]
        return step in self.required_steps(flow_name)

    def field_visibility(self, flow_name: Optional[str]) -> dict[Field, bool]:
        return {field: self.is_visible(flow_name, field) for field in Field}

    @staticmethod
    def placeholder_for(field: Field | str) -> str:
        Field.parse(field)
        return NOT_COLLECTED

    def display_value(self, flow_name: Optional[str], field: Field | str, value: Any) -> str:
        """The value to show for ``field``: sentinel when gated, placeholder when empty."""
        if not self.is_visible(flow_name, field):
            return self.placeholder_for(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            return MISSING_VALUE
        return str(value)


def applicant_flow_label(applicant: Mapping[str, Any]) -> Optional[str]:
    """Flow name stored on an applicant record, or None.

    ``flowName`` wins; otherwise ``flowId`` as a plain name or a ``{name: ...}``
    object. Report and attachment views both resolve the flow through here.
    """
    flow_id = applicant.get("flowId")
    label = first_present(
        applicant.get("flowName"),
        flow_id.get("name") if isinstance(flow_id, dict) else None,
        flow_id if isinstance(flow_id, str) else None,
    )
    return str(label) if label is not None else None


def applicant_flow_name(applicant: Mapping[str, Any]) -> str:
    """Catalog key for an applicant: its stored flow name, else Default."""
    return applicant_flow_label(applicant) or DEFAULT_FLOW


@lru_cache(maxsize=1)
def default_resolver() -> FlowRequirementResolver:
    """Process-wide resolver over the built-in table plus any ``KR_FLOW_CATALOG`` overlay."""
    return FlowRequirementResolver(load_flow_catalog())


# =============================================================================
# ATTACHMENTS
# =============================================================================

@dataclass(frozen=True)
class FlowAttachment:
    """An evidence attachment shown for an applicant."""
    step: Step
    title: str
    file_name: str
    status: str
    exists: bool


_ATTACHMENT_DEFS: tuple[tuple[Step, str, str], ...] = (
    (Step.ID_DOCUMENT, "Identification", "idDocName"),
    (Step.PROOF_OF_ADDRESS, "Utility Bill", "utilityBillName"),
)


def flow_attachments(
    applicant: Mapping[str, Any],
    resolver: Optional[FlowRequirementResolver] = None,
) -> list[FlowAttachment]:
    """Attachments for steps in the applicant's flow that have a file or failed.

    Step states come from the applicant's ``steps`` map (short or canonical
    keys); missing states are ``na``.
    """
    resolver = resolver or default_resolver()
    flow_name = applicant_flow_name(applicant)
    required = resolver.required_steps(flow_name)

    states: dict[Step, StepState] = {}
    raw_steps = applicant.get("steps")
    if isinstance(raw_steps, dict):
        for key, value in raw_steps.items():
            step = Step.parse(key)
            if step is not None:
                states[step] = StepState.parse(value)

    attachments: list[FlowAttachment] = []
    for step, title, file_key in _ATTACHMENT_DEFS:
        if step not in required:
            continue
        file_name = applicant.get(file_key)
        status = states.get(step, StepState.NA)
        exists = bool(file_name)
        if not exists and status is not StepState.FAILED:
            continue
        attachments.append(FlowAttachment(
            step=step,
            title=title,
            file_name=file_name if exists else NOT_UPLOADED,
            status=status.value,
            exists=exists,
        ))
    return attachments
