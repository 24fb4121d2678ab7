"""Compilation and execution of the post-build script.

The script package is compiled from the toolchain home so that no project
`.cargo/config` (including a `build.target` meant for the outer build)
applies to it, and always for the host since it runs on the build machine.

While the script runs its stdout is relayed line by line. A line of the form
``cargo:updated-bin=<old>=<new>`` is consumed instead of relayed and replaces
the binary that would be executed next.
"""

from __future__ import annotations

import os
import subprocess
import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO, cast

from cargo_post.errors import BinaryDiscoveryError, ChildProcessFailed, ProtocolError, SpawnError
from cargo_post.models import (
    SCRIPT_BINARY_NAME,
    EphemeralPackage,
    ResolvedContext,
    ScriptInvocationResult,
)
from cargo_post.toolchain import TARGET_OVERRIDE_VAR, Toolchain

UPDATED_BIN_PREFIX = "cargo:updated-bin="


def executable_name(name: str) -> str:
    return f"{name}.exe" if sys.platform == "win32" else name


def parse_protocol_line(line: str, candidate: Path | None) -> Path | None:
    """Return the replacement binary announced by `line`, or `None` for ordinary output."""
    if not line.startswith(UPDATED_BIN_PREFIX):
        return None

    old, sep, new = line.removeprefix(UPDATED_BIN_PREFIX).partition("=")
    if not sep or not old or not new:
        raise ProtocolError(
            "Malformed `cargo:updated-bin` statement.",
            hint="Print `cargo:updated-bin=<original-binary>=<new-binary>`.",
            context={"line": line},
        )
    if candidate is None or Path(old) != candidate:
        raise ProtocolError(
            "Unknown binary in `cargo:updated-bin` statement.",
            hint="The original path must be the binary that would be executed next.",
            context={"line": line, "expected": str(candidate or "")},
        )
    updated = Path(new)
    if not updated.exists():
        raise ProtocolError(
            "New binary from `cargo:updated-bin` statement does not exist.",
            context={"line": line, "path": new},
        )
    return updated


def relay_script_output(
    lines: Iterable[str],
    candidate: Path | None,
    out: TextIO,
) -> tuple[tuple[str, ...], Path | None]:
    """Relay ordinary lines to `out` and apply `updated-bin` statements in order."""
    relayed: list[str] = []
    updated_bin: Path | None = None
    for raw in lines:
        line = raw.rstrip("\r\n")
        replacement = parse_protocol_line(line, candidate)
        if replacement is None:
            print(line, file=out, flush=True)
            relayed.append(line)
            continue
        updated_bin = replacement
        candidate = replacement
    return tuple(relayed), updated_bin


def existing_binaries(context: ResolvedContext) -> list[Path]:
    binaries = (context.out_dir / executable_name(name) for name in context.out_bins)
    return [binary for binary in binaries if binary.exists()]


def discover_binary(context: ResolvedContext) -> Path:
    binaries = existing_binaries(context)
    if not binaries:
        raise BinaryDiscoveryError(
            "Found no binary to be executed.",
            context={"out_dir": str(context.out_dir), "expected": ", ".join(context.out_bins)},
        )
    if len(binaries) > 1:
        raise BinaryDiscoveryError(
            "More than one binary found.",
            hint="Use the `--bin` option to specify a binary, or the `default-run` manifest key.",
            context={"binaries": ", ".join(str(binary) for binary in binaries)},
        )
    return binaries[0]


def run_checked(
    argv: list[str],
    *,
    operation: str,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> None:
    """Run a command with inherited stdio, raising on spawn failure or non-zero exit."""
    try:
        completed = subprocess.run(argv, cwd=cwd, env=env, check=False)
    except OSError as exc:
        raise SpawnError(
            f"Failed to execute `{argv[0]}`.",
            hint="Check that the program exists and is executable.",
            context={"operation": operation, "argv": " ".join(argv), "error": str(exc)},
        ) from exc
    if completed.returncode != 0:
        raise ChildProcessFailed(
            f"Command `{' '.join(argv)}` failed.",
            returncode=completed.returncode,
            context={"operation": operation},
        )


@dataclass(slots=True)
class ScriptRunner:
    toolchain: Toolchain = field(default_factory=Toolchain.from_env)
    out: TextIO = field(default_factory=lambda: sys.stdout)

    def compile(self, package: EphemeralPackage, context: ResolvedContext) -> Path:
        target_dir = package.root / "target"
        argv = [
            self.toolchain.cargo,
            "build",
            "--manifest-path",
            str(package.manifest_path),
            "--target-dir",
            str(target_dir),
        ]
        binary_dir = target_dir
        if context.target_triple:
            host = self.toolchain.host_triple()
            if context.target_triple != host:
                argv.extend(["--target", host])
                binary_dir = target_dir / host

        env = {key: value for key, value in os.environ.items() if key != TARGET_OVERRIDE_VAR}
        run_checked(argv, operation="compile_script", cwd=self.toolchain.isolated_cwd(), env=env)
        return binary_dir / "debug" / executable_name(SCRIPT_BINARY_NAME)

    def run(
        self,
        binary: Path,
        contract: Mapping[str, str],
        *,
        cwd: Path,
        candidate: Path | None = None,
    ) -> ScriptInvocationResult:
        env = {**os.environ, **contract}
        try:
            process = subprocess.Popen(
                [str(binary)],
                cwd=cwd,
                env=env,
                stdout=subprocess.PIPE,
                # Undecodable bytes are relayed as U+FFFD.
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise SpawnError(
                "Failed to execute post-build script.",
                hint="Check that the script compiled for the host.",
                context={"operation": "run_script", "binary": str(binary), "error": str(exc)},
            ) from exc

        with process:
            stdout = cast(TextIO, process.stdout)
            try:
                relayed, updated_bin = relay_script_output(stdout, candidate, self.out)
            except ProtocolError:
                process.kill()
                raise
            returncode = process.wait()

        return ScriptInvocationResult(
            returncode=returncode,
            stdout_lines=relayed,
            updated_bin=updated_bin,
        )

    def execute_artifact(self, binary: Path, args: Iterable[str] = ()) -> None:
        run_checked([str(binary), *args], operation="execute_artifact")
