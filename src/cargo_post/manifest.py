"""Generation of the throwaway package that compiles `post_build.rs`."""

from __future__ import annotations

import copy
import tomllib
from pathlib import Path
from typing import Any

import tomli_w

from cargo_post.errors import ConfigError, DependencyError
from cargo_post.models import (
    METADATA_NAMESPACE,
    SCRIPT_BINARY_NAME,
    EphemeralPackage,
    ResolvedContext,
)

SCRIPT_EDITION = "2021"


def read_manifest(manifest_path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(manifest_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(
            "Package manifest does not exist.",
            context={"manifest_path": str(manifest_path)},
        ) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(
            "Unable to read package manifest.",
            hint=str(exc),
            context={"manifest_path": str(manifest_path)},
        ) from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            "Invalid package manifest TOML.",
            hint=str(exc),
            context={"manifest_path": str(manifest_path)},
        ) from exc


def read_script_dependencies(manifest_path: Path) -> dict[str, Any]:
    """Return `[package.metadata.cargo-post.dependencies]`, or an empty table."""
    manifest = read_manifest(manifest_path)
    section: Any = manifest
    for key in ("package", "metadata", METADATA_NAMESPACE, "dependencies"):
        if not isinstance(section, dict):
            raise DependencyError(
                "Invalid post-build dependency metadata.",
                hint=f"Expected a table at `package.metadata.{METADATA_NAMESPACE}.dependencies`.",
                context={"manifest_path": str(manifest_path)},
            )
        section = section.get(key)
        if section is None:
            return {}
    if not isinstance(section, dict):
        raise DependencyError(
            "Invalid post-build dependency table.",
            hint=f"Expected a table at `package.metadata.{METADATA_NAMESPACE}.dependencies`.",
            context={"manifest_path": str(manifest_path)},
        )
    return section


def rewrite_path_dependencies(dependencies: dict[str, Any], manifest_dir: Path) -> dict[str, Any]:
    """Make every `path = ...` dependency absolute, relative to the manifest directory."""
    rewritten = copy.deepcopy(dependencies)
    for name, dependency in rewritten.items():
        if not isinstance(dependency, dict) or "path" not in dependency:
            continue
        raw_path = dependency["path"]
        if not isinstance(raw_path, str):
            raise DependencyError(
                f"Dependency `{name}` has a non-string path.",
                context={"dependency": name},
            )
        try:
            resolved = (manifest_dir / raw_path).resolve(strict=True)
        except (FileNotFoundError, NotADirectoryError) as exc:
            raise DependencyError(
                f"Dependency `{name}` does not exist at {manifest_dir / raw_path}.",
                hint="Fix the path in the post-build dependency table.",
                context={"dependency": name, "path": raw_path, "manifest_dir": str(manifest_dir)},
            ) from exc
        dependency["path"] = str(resolved)
    return rewritten


def render_script_manifest(script_path: Path, dependencies: dict[str, Any]) -> str:
    document: dict[str, Any] = {
        "package": {
            "name": SCRIPT_BINARY_NAME,
            "version": "0.1.0",
            "edition": SCRIPT_EDITION,
            "publish": False,
        },
        "bin": [{"name": SCRIPT_BINARY_NAME, "path": str(script_path)}],
        "dependencies": dependencies,
        "workspace": {},
    }
    return tomli_w.dumps(document)


def generate_script_package(context: ResolvedContext) -> EphemeralPackage | None:
    """Write the script package manifest; `None` when the package has no script."""
    script_path = context.script_path
    if not script_path.is_file():
        return None

    dependencies = rewrite_path_dependencies(
        read_script_dependencies(context.manifest_path),
        context.manifest_dir,
    )
    package_dir = context.script_package_dir
    package_dir.mkdir(parents=True, exist_ok=True)
    manifest_path = package_dir / "Cargo.toml"
    manifest_path.write_text(render_script_manifest(script_path, dependencies), encoding="utf-8")
    return EphemeralPackage(
        manifest_path=manifest_path,
        script_path=script_path,
        dependencies=dependencies,
    )
