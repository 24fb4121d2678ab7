"""Toolchain discovery: cargo/rustc executables, toolchain home and host triple."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from cargo_post.errors import ResolutionError, SpawnError

TARGET_OVERRIDE_VAR = "CARGO_BUILD_TARGET"


@dataclass(frozen=True, slots=True)
class Toolchain:
    cargo: str = "cargo"
    rustc: str = "rustc"
    home: Path = Path.home() / ".cargo"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Toolchain:
        env = os.environ if env is None else env
        home = env.get("CARGO_HOME")
        return cls(
            cargo=env.get("CARGO") or "cargo",
            rustc=env.get("RUSTC") or "rustc",
            home=Path(home) if home else Path.home() / ".cargo",
        )

    def isolated_cwd(self) -> Path:
        """Working directory for builds that must not see any project `.cargo/config`."""
        if self.home.is_dir():
            return self.home
        return Path.home()

    def host_triple(self) -> str:
        output = run_captured([self.rustc, "-vV"], operation="host_triple")
        for line in output.splitlines():
            if line.startswith("host:"):
                return line.removeprefix("host:").strip()
        raise ResolutionError(
            "Unable to determine the host target triple.",
            hint="Check that `rustc -vV` reports a `host:` line.",
            context={"operation": "host_triple", "rustc": self.rustc},
        )


def run_captured(
    argv: list[str],
    *,
    operation: str,
    cwd: Path | None = None,
) -> str:
    """Run a helper command to completion and return its stdout."""
    try:
        completed = subprocess.run(
            argv,
            cwd=cwd,
            check=False,
            text=True,
            capture_output=True,
        )
    except OSError as exc:
        raise SpawnError(
            f"Failed to execute `{argv[0]}`.",
            hint="Ensure the Rust toolchain is installed and in PATH.",
            context={"operation": operation, "argv": " ".join(argv), "error": str(exc)},
        ) from exc
    if completed.returncode != 0:
        raise ResolutionError(
            f"`{argv[0]}` command failed.",
            hint="Inspect the command output and the workspace manifest.",
            context={
                "operation": operation,
                "argv": " ".join(argv),
                "returncode": str(completed.returncode),
                "stderr": completed.stderr.strip()[:2000],
            },
        )
    return completed.stdout
