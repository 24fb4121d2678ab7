"""Failure kinds of a `cargo post` run.

Every error carries a stable `ErrorCode`, so the CLI can tell failures
apart without parsing messages. `ChildProcessFailed` additionally carries
the exit status that `cargo post` itself exits with.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import ClassVar


class ErrorCode(StrEnum):
    CONFIG = "E_CONFIG"
    RESOLUTION = "E_RESOLUTION"
    DEPENDENCY = "E_DEPENDENCY"
    PROTOCOL = "E_PROTOCOL"
    BINARY_DISCOVERY = "E_BINARY_DISCOVERY"
    SPAWN = "E_SPAWN"
    CHILD_EXIT = "E_CHILD_EXIT"


class CargoPostError(Exception):
    code: ClassVar[ErrorCode]

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        # Empty values are dropped so rendered context only shows known facts.
        self.context = {key: value for key, value in (context or {}).items() if value}

    def __str__(self) -> str:
        lines = [self.message]
        if self.hint:
            lines.append(f"Hint: {self.hint}")
        lines.extend(f"  {key}: {value}" for key, value in self.context.items())
        return "\n".join(lines)

    def to_dict(self) -> dict[str, object]:
        return {
            "code": str(self.code),
            "message": self.message,
            "hint": self.hint,
            "context": dict(self.context),
        }


class ConfigError(CargoPostError):
    """Unreadable or malformed cargo configuration or manifest."""

    code = ErrorCode.CONFIG


class ResolutionError(CargoPostError):
    """The build context cannot be reconstructed unambiguously."""

    code = ErrorCode.RESOLUTION


class DependencyError(CargoPostError):
    code = ErrorCode.DEPENDENCY


class ProtocolError(CargoPostError):
    """A `cargo:updated-bin` statement could not be honoured."""

    code = ErrorCode.PROTOCOL


class BinaryDiscoveryError(CargoPostError):
    code = ErrorCode.BINARY_DISCOVERY


class SpawnError(CargoPostError):
    """A child process could not be started at all."""

    code = ErrorCode.SPAWN


class ChildProcessFailed(CargoPostError):
    """A child process ran and exited with a non-zero status."""

    code = ErrorCode.CHILD_EXIT

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        # Signal terminations carry no exit code.
        self.returncode = returncode if returncode is not None and returncode > 0 else 1
        super().__init__(
            message,
            hint=hint,
            context={"returncode": str(self.returncode), **dict(context or {})},
        )


__all__ = [
    "BinaryDiscoveryError",
    "CargoPostError",
    "ChildProcessFailed",
    "ConfigError",
    "DependencyError",
    "ErrorCode",
    "ProtocolError",
    "ResolutionError",
    "SpawnError",
]
