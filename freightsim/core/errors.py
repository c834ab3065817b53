"""Structured error taxonomy shared by the simulation and decision layers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from pydantic import ValidationError as PydanticValidationError


class ErrorKind(str, Enum):
    """Categories callers can branch on."""

    INVALID_PARAMETER = "invalid_parameter"
    EMPTY_DATASET = "empty_dataset"
    RUNTIME_FAILURE = "runtime_failure"


@dataclass(frozen=True)
class ErrorInfo:
    """Serializable description of a failure carried by terminal run events."""

    kind: ErrorKind
    message: str
    detail: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        payload = {"kind": self.kind.value, "message": self.message}
        if self.detail:
            payload["detail"] = self.detail
        return payload


class SimulationError(Exception):
    """Base class for every error raised by the engine."""

    kind: ErrorKind = ErrorKind.RUNTIME_FAILURE

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_info(self, detail: Optional[str] = None) -> ErrorInfo:
        return ErrorInfo(kind=self.kind, message=self.message, detail=detail)

    def to_dict(self) -> Dict[str, str]:
        return self.to_info().to_dict()


class InvalidParameterError(SimulationError, ValueError):
    """Malformed distribution spec or simulation parameter."""

    kind = ErrorKind.INVALID_PARAMETER


class EmptyDatasetError(SimulationError):
    """Statistics requested on zero samples."""

    kind = ErrorKind.EMPTY_DATASET


class RuntimeFailureError(SimulationError):
    """Unexpected failure while iterating."""

    kind = ErrorKind.RUNTIME_FAILURE


def invalid_parameter_from(exc: PydanticValidationError) -> InvalidParameterError:
    """Collapse a pydantic validation error into a single InvalidParameterError."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return InvalidParameterError("; ".join(parts) or str(exc))


__all__ = [
    "ErrorKind",
    "ErrorInfo",
    "SimulationError",
    "InvalidParameterError",
    "EmptyDatasetError",
    "RuntimeFailureError",
    "invalid_parameter_from",
]
