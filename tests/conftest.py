"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from cargo_post.models import PackageInfo, TargetInfo, WorkspaceMetadata

PackageFactory = Callable[..., PackageInfo]


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    root = tmp_path.resolve() / "ws"
    root.mkdir()
    return root


@pytest.fixture
def cargo_home(tmp_path: Path) -> Path:
    home = tmp_path.resolve() / "cargo-home"
    home.mkdir()
    return home


@pytest.fixture
def make_package(workspace_root: Path) -> PackageFactory:
    """Create a package directory with a Cargo.toml and, by default, a post_build.rs."""

    def factory(
        name: str,
        *,
        script: str | None = "fn main() {}\n",
        extra_manifest: str = "",
        bins: tuple[str, ...] | None = None,
        examples: tuple[str, ...] = (),
    ) -> PackageInfo:
        package_dir = workspace_root / name
        package_dir.mkdir(parents=True)
        manifest_path = package_dir / "Cargo.toml"
        manifest_path.write_text(
            f'[package]\nname = "{name}"\nversion = "0.1.0"\n{extra_manifest}',
            encoding="utf-8",
        )
        if script is not None:
            (package_dir / "post_build.rs").write_text(script, encoding="utf-8")
        targets = [
            TargetInfo(name=bin_name, kind=("bin",), crate_types=("bin",))
            for bin_name in (bins if bins is not None else (name,))
        ]
        targets.extend(
            TargetInfo(name=example, kind=("example",), crate_types=("bin",))
            for example in examples
        )
        return PackageInfo(name=name, manifest_path=manifest_path, targets=tuple(targets))

    return factory


@pytest.fixture
def make_workspace(workspace_root: Path) -> Callable[..., WorkspaceMetadata]:
    def factory(*packages: PackageInfo) -> WorkspaceMetadata:
        return WorkspaceMetadata(
            target_directory=workspace_root / "target",
            packages=packages,
            workspace_root=workspace_root,
        )

    return factory
