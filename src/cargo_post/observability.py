"""Per-phase run records, exported as JSON lines beside the script package."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class StructuredLogger:
    operation: str = "cargo_post"
    records: list[dict[str, Any]] = field(default_factory=list)

    def log(
        self,
        package: str,
        phase: str,
        message: str,
        *,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "operation": self.operation,
            "package": package,
            "phase": phase,
            "level": level,
            "message": message,
        }
        if extra:
            record["extra"] = extra
        self.records.append(record)

    def select(
        self,
        *,
        package: str | None = None,
        phase: str | None = None,
    ) -> list[dict[str, Any]]:
        return [
            record
            for record in self.records
            if package in (None, record["package"]) and phase in (None, record["phase"])
        ]

    def phases(self, package: str) -> list[str]:
        """Phases reached by `package`, in the order they were logged."""
        return [record["phase"] for record in self.select(package=package)]

    def to_json_lines(self, path: str | Path, *, package: str | None = None) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as handle:
            for record in self.select(package=package):
                handle.write(json.dumps(record, sort_keys=True) + "\n")
        return output_path
