"""Error taxonomy and the result type shared by every pipeline stage."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class ErrorKind(enum.Enum):
    STRUCTURAL = "structural"
    SEMANTIC = "semantic"
    CONSISTENCY = "consistency"


class ErrorCode(str, enum.Enum):
    BUFFER_TOO_SMALL = "buffer_too_small"
    INVALID_MAGIC = "invalid_magic"
    SIZE_MISMATCH = "size_mismatch"
    INVALID_PACKET_LENGTH = "invalid_packet_length"
    CSI_LENGTH_MISMATCH = "csi_length_mismatch"
    INVALID_FIELDS = "invalid_fields"


@dataclass(frozen=True)
class Violation:
    """One failed field constraint.  ``field`` is a dotted path."""
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class PacketError(Exception):
    """Base class for packets rejected by this package."""

    kind: ErrorKind

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "code": self.code.value,
                "message": self.message}


class StructuralError(PacketError):
    """The bytes do not form a packet: too short, bad magic, bad lengths."""

    kind = ErrorKind.STRUCTURAL


class SemanticError(PacketError):
    """Well-formed bytes carrying out-of-range or malformed values."""

    kind = ErrorKind.SEMANTIC

    def __init__(self, violations: list[Violation]):
        self.violations = list(violations)
        detail = "; ".join(str(v) for v in self.violations)
        super().__init__(
            ErrorCode.INVALID_FIELDS,
            f"{len(self.violations)} invalid field(s): {detail}",
        )

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["violations"] = [{"field": v.field, "message": v.message}
                           for v in self.violations]
        return d


class ConsistencyWarning(UserWarning):
    """Non-fatal crosscheck finding; logged and collected, never raised."""

    kind = ErrorKind.CONSISTENCY

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass
class Result:
    """Outcome of a validation or parse step.

    Exactly one of ``value``/``error`` is meaningful: ``error`` is None on
    success.  Consistency findings accumulate in ``warnings`` either way.
    """

    value: Any = None
    error: PacketError | None = None
    warnings: list[ConsistencyWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    # Matches the {valid, error} shape of the pre-parse check
    @property
    def valid(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> Any:
        """Return the value, or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value

    @classmethod
    def success(cls, value: Any = None,
                warnings: list[ConsistencyWarning] | None = None) -> Result:
        return cls(value=value, warnings=list(warnings or []))

    @classmethod
    def failure(cls, error: PacketError,
                warnings: list[ConsistencyWarning] | None = None) -> Result:
        return cls(error=error, warnings=list(warnings or []))
