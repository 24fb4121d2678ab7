"""Hierarchical cargo configuration search for the preferred build target.

Cargo merges `.cargo/config.toml` files from the working directory up to the
filesystem root and finally `$CARGO_HOME/config.toml`. Only `build.target`
matters here, so the nearest file that sets it wins.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path

from cargo_post.errors import ConfigError
from cargo_post.models import Invocation
from cargo_post.toolchain import TARGET_OVERRIDE_VAR

CONFIG_FILE_NAMES = ("config", "config.toml")


def candidate_config_dirs(start: Path, home: Path) -> list[Path]:
    """Return every directory that may hold a cargo config, nearest first."""
    start = start.absolute()
    candidates = [directory / ".cargo" for directory in (start, *start.parents)]
    if home not in candidates:
        candidates.append(home)
    return candidates


def config_file_in(directory: Path) -> Path | None:
    for name in CONFIG_FILE_NAMES:
        path = directory / name
        if path.is_file():
            return path
    return None


def read_build_target(path: Path) -> str | None:
    try:
        payload = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(
            "Unable to read cargo configuration file.",
            hint=str(exc),
            context={"path": str(path)},
        ) from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            "Invalid cargo configuration file.",
            hint=str(exc),
            context={"path": str(path)},
        ) from exc

    build = payload.get("build")
    if build is None:
        return None
    if not isinstance(build, dict):
        raise ConfigError(
            "Invalid `build` section in cargo configuration.",
            context={"path": str(path)},
        )

    target = build.get("target")
    if target is None:
        return None
    if isinstance(target, list) and len(target) == 1:
        target = target[0]
    if isinstance(target, list):
        raise ConfigError(
            "Cargo configuration lists several build targets.",
            hint="Pass `--target` explicitly to choose one.",
            context={"path": str(path), "build.target": ", ".join(map(str, target))},
        )
    if not isinstance(target, str) or not target:
        raise ConfigError(
            "Invalid `build.target` value in cargo configuration.",
            context={"path": str(path)},
        )
    return target


def find_config_target(start: Path, home: Path) -> str | None:
    for directory in candidate_config_dirs(start, home):
        path = config_file_in(directory)
        if path is None:
            continue
        target = read_build_target(path)
        if target is not None:
            return target
    return None


def preferred_target(
    invocation: Invocation,
    *,
    start: Path,
    home: Path,
    env: Mapping[str, str] | None = None,
) -> tuple[str | None, str | None]:
    """Return `(raw_target, triple_source)` following cargo's precedence.

    The raw target is only reported for an explicit flag or the override
    variable; a target found in configuration supplies the triple alone.
    """
    env = os.environ if env is None else env
    if invocation.target is not None:
        return invocation.target, invocation.target
    override = env.get(TARGET_OVERRIDE_VAR)
    if override:
        return override, override
    return None, find_config_target(start, home)
