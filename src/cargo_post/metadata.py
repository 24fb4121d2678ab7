"""Workspace discovery through `cargo metadata`."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from cargo_post.errors import ResolutionError
from cargo_post.models import Invocation, PackageInfo, TargetInfo, WorkspaceMetadata
from cargo_post.resolve import explicit_manifest_path
from cargo_post.toolchain import Toolchain, run_captured


def load_workspace(
    toolchain: Toolchain,
    manifest_path: str | None = None,
    *,
    cwd: Path | None = None,
) -> WorkspaceMetadata:
    argv = [toolchain.cargo, "metadata", "--no-deps", "--format-version", "1"]
    if manifest_path is not None:
        argv.extend(["--manifest-path", manifest_path])
    return parse_metadata(run_captured(argv, operation="cargo_metadata", cwd=cwd))


def parse_metadata(raw: str) -> WorkspaceMetadata:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ResolutionError("Invalid `cargo metadata` JSON.", hint=str(exc)) from exc

    if not isinstance(payload, dict):
        raise ResolutionError("Invalid `cargo metadata` payload type.")

    packages_raw = payload.get("packages", [])
    if not isinstance(packages_raw, list):
        raise ResolutionError("Invalid `cargo metadata` `packages` value.")
    workspace_root = payload.get("workspace_root")
    return WorkspaceMetadata(
        target_directory=Path(_required_str(payload, "target_directory")),
        packages=tuple(_parse_package(item) for item in packages_raw),
        workspace_root=Path(workspace_root) if isinstance(workspace_root, str) else None,
    )


def select_packages(
    workspace: WorkspaceMetadata,
    invocation: Invocation,
    *,
    cwd: Path | None = None,
) -> list[PackageInfo]:
    """Packages the wrapped command applies to, in workspace order.

    `--package` picks by name. Otherwise an explicit member manifest picks its
    package, and a virtual workspace manifest keeps every member.
    """
    if invocation.package is None:
        manifest_path = explicit_manifest_path(invocation, cwd=cwd)
        members = [
            package
            for package in workspace.packages
            if manifest_path is not None and package.manifest_path.resolve() == manifest_path
        ]
        return members or list(workspace.packages)
    packages = [package for package in workspace.packages if package.name == invocation.package]
    if not packages:
        raise ResolutionError(
            "Specified package not found in workspace.",
            hint="Check the `--package` value against the workspace members.",
            context={
                "package": invocation.package,
                "available": ", ".join(package.name for package in workspace.packages),
            },
        )
    return packages


def _parse_package(item: Any) -> PackageInfo:
    if not isinstance(item, dict):
        raise ResolutionError("Invalid package entry in `cargo metadata` output.")
    targets_raw = item.get("targets", [])
    if not isinstance(targets_raw, list):
        raise ResolutionError("Invalid package `targets` value in `cargo metadata` output.")
    return PackageInfo(
        name=_required_str(item, "name"),
        manifest_path=Path(_required_str(item, "manifest_path")),
        targets=tuple(_parse_target(target) for target in targets_raw),
    )


def _parse_target(item: Any) -> TargetInfo:
    if not isinstance(item, dict):
        raise ResolutionError("Invalid target entry in `cargo metadata` output.")
    return TargetInfo(
        name=_required_str(item, "name"),
        kind=tuple(item.get("kind", ())),
        crate_types=tuple(item.get("crate_types", ())),
    )


def _required_str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise ResolutionError(f"Invalid `cargo metadata` `{key}` value.")
    return value
