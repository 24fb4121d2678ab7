"""Build context resolution.

Reconstructs which manifest, profile, target and output directory an outer
cargo invocation used, without asking cargo about anything beyond workspace
metadata.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path, PurePath

from cargo_post.config import preferred_target
from cargo_post.errors import ResolutionError
from cargo_post.models import Invocation, PackageInfo, Profile, ResolvedContext, WorkspaceMetadata


def resolve_context(
    invocation: Invocation,
    workspace: WorkspaceMetadata,
    package: PackageInfo | None = None,
    *,
    home: Path,
    env: Mapping[str, str] | None = None,
    cwd: Path | None = None,
) -> ResolvedContext:
    if package is None:
        package = sole_package(workspace)

    manifest_path = resolve_manifest_path(invocation, package, cwd=cwd)
    manifest_dir = manifest_path.parent

    # cargo reads its configuration relative to where it was started.
    raw_target, triple_source = preferred_target(
        invocation,
        start=outer_build_dir(invocation, package, cwd=cwd),
        home=home,
        env=env,
    )
    return ResolvedContext(
        manifest_dir=manifest_dir,
        manifest_path=manifest_path,
        target_dir=workspace.target_directory.absolute(),
        profile=resolve_profile(invocation),
        build_command=invocation.build_command,
        target=raw_target,
        target_triple=target_triple_from(triple_source),
        out_bins=executable_names(invocation, package),
    )


def outer_build_dir(
    invocation: Invocation,
    package: PackageInfo,
    *,
    cwd: Path | None = None,
) -> Path:
    """Directory the wrapped cargo command runs in."""
    if invocation.manifest_path is not None:
        return cwd or Path.cwd()
    return package.manifest_dir


def explicit_manifest_path(invocation: Invocation, *, cwd: Path | None = None) -> Path | None:
    """The `--manifest-path` value as an existing absolute path, or `None` without the flag."""
    if invocation.manifest_path is None:
        return None
    manifest_path = Path(invocation.manifest_path)
    if not manifest_path.is_absolute():
        manifest_path = (cwd or Path.cwd()) / manifest_path
    if not manifest_path.is_file():
        raise ResolutionError(
            "Package manifest does not exist.",
            hint="Check the `--manifest-path` value.",
            context={"manifest_path": str(manifest_path)},
        )
    return manifest_path.resolve()


def sole_package(workspace: WorkspaceMetadata) -> PackageInfo:
    if len(workspace.packages) == 1:
        return workspace.packages[0]
    if not workspace.packages:
        raise ResolutionError(
            "No package found in workspace.",
            context={"workspace_root": str(workspace.workspace_root or "")},
        )
    raise ResolutionError(
        "Ambiguous package selection.",
        hint="Pass `--package <name>` or `--manifest-path` to pick one package.",
        context={"packages": ", ".join(package.name for package in workspace.packages)},
    )


def resolve_manifest_path(
    invocation: Invocation,
    package: PackageInfo,
    *,
    cwd: Path | None = None,
) -> Path:
    explicit_manifest_path(invocation, cwd=cwd)
    if not package.manifest_path.is_file():
        raise ResolutionError(
            "Package manifest does not exist.",
            context={"manifest_path": str(package.manifest_path)},
        )
    # A virtual workspace manifest selects every member; each keeps its own.
    return package.manifest_path.resolve()


def resolve_profile(invocation: Invocation) -> Profile:
    return "release" if invocation.release else "debug"


def target_triple_from(target: str | None) -> str | None:
    """Normalize a target flag value, which may be a path to a target spec file."""
    if target is None:
        return None
    stem = PurePath(target).stem
    if not target.strip() or not stem:
        raise ResolutionError(
            "Malformed target value.",
            hint="Pass a target triple or a path to a target specification file.",
            context={"target": target},
        )
    return stem


def executable_names(invocation: Invocation, package: PackageInfo) -> tuple[str, ...]:
    """Names of the binaries the build produces, relative to the output directory."""
    names: list[str] = []
    for target in package.targets:
        if not target.is_executable:
            continue
        is_example = "example" in target.kind
        if invocation.example is not None:
            if is_example and target.name == invocation.example:
                names.append(f"examples/{target.name}")
        elif invocation.all_examples:
            if is_example:
                names.append(f"examples/{target.name}")
        elif "bin" in target.kind and invocation.bin in (None, target.name):
            names.append(target.name)
    return tuple(names)
