"""Projection of a resolved build context into the post-build environment."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path

import cbor2

from cargo_post.models import ResolvedContext

CONTRACT_VARIABLES = (
    "CRATE_MANIFEST_DIR",
    "CRATE_MANIFEST_PATH",
    "CRATE_TARGET_DIR",
    "CRATE_OUT_DIR",
    "CRATE_TARGET",
    "CRATE_TARGET_TRIPLE",
    "CRATE_PROFILE",
    "CRATE_BUILD_COMMAND",
    "CRATE_OUT_BINS",
)


@dataclass(frozen=True, slots=True)
class EnvironmentContract(Mapping[str, str]):
    values: dict[str, str] = field(default_factory=dict)

    def __getitem__(self, key: str) -> str:
        return self.values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def to_json(self, path: str | Path | None = None) -> str:
        encoded = json.dumps(self._payload(), indent=2, sort_keys=True) + "\n"
        if path is not None:
            Path(path).write_text(encoded, encoding="utf-8")
        return encoded

    def to_cbor(self) -> bytes:
        return cbor2.dumps(self._payload(), canonical=True)

    def digest(self) -> str:
        return hashlib.sha256(self.to_cbor()).hexdigest()

    def _payload(self) -> dict[str, str]:
        return dict(sorted(self.values.items()))


def build_environment(context: ResolvedContext) -> EnvironmentContract:
    values = {
        "CRATE_MANIFEST_DIR": str(context.manifest_dir),
        "CRATE_MANIFEST_PATH": str(context.manifest_path),
        "CRATE_TARGET_DIR": str(context.target_dir),
        "CRATE_OUT_DIR": str(context.out_dir),
        "CRATE_TARGET": context.target or "",
        "CRATE_TARGET_TRIPLE": context.target_triple or "",
        "CRATE_PROFILE": context.profile,
        "CRATE_BUILD_COMMAND": context.build_command,
        "CRATE_OUT_BINS": ":".join(context.out_bins),
    }
    return EnvironmentContract(values={name: values[name] for name in CONTRACT_VARIABLES})
