"""Core typed dataclasses for invocations, workspaces and resolved build contexts."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

Profile = Literal["debug", "release"]
ScriptCall = Literal["none", "after", "between"]

POST_BUILD_SCRIPT_NAME = "post_build.rs"
SCRIPT_PACKAGE_DIR = "post_build_script_manifest"
SCRIPT_BINARY_NAME = "post-build-script"
METADATA_NAMESPACE = "cargo-post"


@dataclass(frozen=True, slots=True)
class Invocation:
    """Every flag this engine cares about, parsed once from the argument list."""

    args: tuple[str, ...]
    command: str | None
    script_call: ScriptCall
    manifest_path: str | None = None
    package: str | None = None
    target: str | None = None
    release: bool = False
    bin: str | None = None
    example: str | None = None
    all_examples: bool = False

    @property
    def build_command(self) -> str:
        return " ".join(("cargo", *self.args))

    def split_exec_args(self) -> tuple[tuple[str, ...], tuple[str, ...]]:
        """Split into build arguments and the arguments held back for the artifact."""
        if "--" not in self.args:
            return self.args, ()
        index = self.args.index("--")
        return self.args[:index], self.args[index + 1 :]


@dataclass(frozen=True, slots=True)
class TargetInfo:
    name: str
    kind: tuple[str, ...] = ()
    crate_types: tuple[str, ...] = ()

    @property
    def is_executable(self) -> bool:
        return "bin" in self.crate_types


@dataclass(frozen=True, slots=True)
class PackageInfo:
    name: str
    manifest_path: Path
    targets: tuple[TargetInfo, ...] = ()

    @property
    def manifest_dir(self) -> Path:
        return self.manifest_path.parent


@dataclass(frozen=True, slots=True)
class WorkspaceMetadata:
    target_directory: Path
    packages: tuple[PackageInfo, ...] = ()
    workspace_root: Path | None = None


@dataclass(frozen=True, slots=True)
class ResolvedContext:
    manifest_dir: Path
    manifest_path: Path
    target_dir: Path
    profile: Profile
    build_command: str
    target: str | None = None
    target_triple: str | None = None
    out_bins: tuple[str, ...] = ()

    @property
    def out_dir(self) -> Path:
        out_dir = self.target_dir
        if self.target_triple:
            out_dir = out_dir / self.target_triple
        return out_dir / self.profile

    @property
    def script_path(self) -> Path:
        return self.manifest_dir / POST_BUILD_SCRIPT_NAME

    @property
    def script_package_dir(self) -> Path:
        return self.target_dir / SCRIPT_PACKAGE_DIR


@dataclass(frozen=True, slots=True)
class EphemeralPackage:
    manifest_path: Path
    script_path: Path
    dependencies: dict[str, object] = field(default_factory=dict)

    @property
    def root(self) -> Path:
        return self.manifest_path.parent


@dataclass(frozen=True, slots=True)
class ScriptInvocationResult:
    returncode: int
    stdout_lines: tuple[str, ...] = ()
    updated_bin: Path | None = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0
