"""Resources returned by the licensing API, parsed from JSON:API documents."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ValidationCode(str, Enum):
    """Validation outcome codes reported by a scoped license validation."""

    VALID = "VALID"
    NOT_FOUND = "NOT_FOUND"
    SUSPENDED = "SUSPENDED"
    EXPIRED = "EXPIRED"
    OVERDUE = "OVERDUE"
    BANNED = "BANNED"
    NO_MACHINE = "NO_MACHINE"
    NO_MACHINES = "NO_MACHINES"
    TOO_MANY_MACHINES = "TOO_MANY_MACHINES"
    TOO_MANY_CORES = "TOO_MANY_CORES"
    TOO_MANY_PROCESSES = "TOO_MANY_PROCESSES"
    FINGERPRINT_SCOPE_MISMATCH = "FINGERPRINT_SCOPE_MISMATCH"
    FINGERPRINT_SCOPE_REQUIRED = "FINGERPRINT_SCOPE_REQUIRED"
    FINGERPRINT_SCOPE_EMPTY = "FINGERPRINT_SCOPE_EMPTY"
    HEARTBEAT_NOT_STARTED = "HEARTBEAT_NOT_STARTED"
    HEARTBEAT_DEAD = "HEARTBEAT_DEAD"
    PRODUCT_SCOPE_REQUIRED = "PRODUCT_SCOPE_REQUIRED"
    PRODUCT_SCOPE_MISMATCH = "PRODUCT_SCOPE_MISMATCH"
    POLICY_SCOPE_REQUIRED = "POLICY_SCOPE_REQUIRED"
    POLICY_SCOPE_MISMATCH = "POLICY_SCOPE_MISMATCH"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def _missing_(cls, value: object) -> "ValidationCode":
        return cls.UNKNOWN


@dataclass
class ValidationResult:
    """Result of a fingerprint-scoped license key validation."""

    valid: bool
    code: ValidationCode = ValidationCode.UNKNOWN
    raw_code: str = ""
    detail: str = ""
    license_id: Optional[str] = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "ValidationResult":
        meta = doc.get("meta") or {}
        license_data = doc.get("data") or {}
        raw_code = meta.get("code") or ""
        return cls(
            valid=bool(meta.get("valid", False)),
            code=ValidationCode(raw_code),
            raw_code=raw_code,
            detail=meta.get("detail", ""),
            license_id=license_data.get("id"),
        )


def _relationship_id(data: dict[str, Any], name: str) -> Optional[str]:
    rel = (data.get("relationships") or {}).get(name) or {}
    return (rel.get("data") or {}).get("id")


@dataclass
class Machine:
    """A claimed seat binding a fingerprint to a license."""

    id: str
    fingerprint: str = ""
    license_id: Optional[str] = None
    attributes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_resource(cls, data: dict[str, Any]) -> "Machine":
        attrs = data.get("attributes") or {}
        return cls(
            id=data["id"],
            fingerprint=attrs.get("fingerprint", ""),
            license_id=_relationship_id(data, "license"),
            attributes=attrs,
        )


@dataclass
class Process:
    """This running instance registered as a live consumer of a machine seat."""

    id: str
    pid: str = ""
    interval: Optional[int] = None
    machine_id: Optional[str] = None
    status: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_resource(cls, data: dict[str, Any]) -> "Process":
        attrs = data.get("attributes") or {}
        return cls(
            id=data["id"],
            pid=str(attrs.get("pid", "")),
            interval=attrs.get("interval"),
            machine_id=_relationship_id(data, "machine"),
            status=attrs.get("status", ""),
            attributes=attrs,
        )
