"""Per-package orchestration of the outer build and the post-build script."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from cargo_post.environment import EnvironmentContract, build_environment
from cargo_post.errors import ChildProcessFailed, ResolutionError
from cargo_post.manifest import generate_script_package
from cargo_post.metadata import load_workspace, select_packages
from cargo_post.models import (
    EphemeralPackage,
    Invocation,
    PackageInfo,
    ResolvedContext,
    ScriptInvocationResult,
    WorkspaceMetadata,
)
from cargo_post.observability import StructuredLogger
from cargo_post.resolve import outer_build_dir, resolve_context
from cargo_post.runner import ScriptRunner, discover_binary, existing_binaries, run_checked
from cargo_post.toolchain import Toolchain

LOG_FILE_NAME = "post_build.log.jsonl"
ENV_FILE_NAME = "post_build_env.json"


@dataclass(frozen=True, slots=True)
class PreparedScript:
    context: ResolvedContext
    contract: EnvironmentContract
    package: EphemeralPackage | None


def prepare_post_build(
    invocation: Invocation,
    workspace: WorkspaceMetadata,
    package: PackageInfo | None,
    *,
    toolchain: Toolchain,
    env: Mapping[str, str] | None = None,
    cwd: Path | None = None,
) -> PreparedScript:
    """Resolve the context, project the contract and write the script package."""
    context = resolve_context(
        invocation,
        workspace,
        package,
        home=toolchain.home,
        env=env,
        cwd=cwd,
    )
    contract = build_environment(context)
    script_package = generate_script_package(context)
    if script_package is not None:
        contract.to_json(script_package.root / ENV_FILE_NAME)
    return PreparedScript(context=context, contract=contract, package=script_package)


def execute_script(
    prepared: PreparedScript,
    *,
    runner: ScriptRunner,
    candidate: Path | None = None,
) -> ScriptInvocationResult | None:
    if prepared.package is None:
        return None
    print(f"Running Post Build Script at {prepared.package.script_path}", file=runner.out, flush=True)
    binary = runner.compile(prepared.package, prepared.context)
    return runner.run(
        binary,
        prepared.contract,
        cwd=prepared.context.manifest_dir,
        candidate=candidate,
    )


def run_post_build_script(
    invocation: Invocation,
    workspace: WorkspaceMetadata,
    package: PackageInfo | None = None,
    *,
    runner: ScriptRunner | None = None,
    env: Mapping[str, str] | None = None,
    cwd: Path | None = None,
    candidate: Path | None = None,
) -> tuple[ScriptInvocationResult | None, EnvironmentContract]:
    """Run the package's post-build script, if any, and return its environment contract."""
    runner = runner or ScriptRunner()
    prepared = prepare_post_build(
        invocation,
        workspace,
        package,
        toolchain=runner.toolchain,
        env=env,
        cwd=cwd,
    )
    return execute_script(prepared, runner=runner, candidate=candidate), prepared.contract


@dataclass(slots=True)
class Pipeline:
    runner: ScriptRunner = field(default_factory=ScriptRunner)
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    env: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))
    cwd: Path = field(default_factory=Path.cwd)

    @property
    def toolchain(self) -> Toolchain:
        return self.runner.toolchain

    def run(self, invocation: Invocation) -> None:
        """Run the wrapped cargo command for every selected package, in workspace order.

        Raises `ChildProcessFailed` carrying the first non-zero exit code.
        """
        workspace = load_workspace(self.toolchain, invocation.manifest_path, cwd=self.cwd)
        packages = select_packages(workspace, invocation, cwd=self.cwd)
        if invocation.script_call == "between" and len(packages) > 1:
            raise ResolutionError(
                "Ambiguous package selection.",
                hint="Pass `--package <name>` to choose the package to run.",
                context={
                    "command": invocation.command or "",
                    "packages": ", ".join(package.name for package in packages),
                },
            )

        build_args, exec_args = invocation.split_exec_args()
        if invocation.script_call == "between":
            build_args = ("build", *build_args[1:])

        for package in packages:
            self._run_package(invocation, workspace, package, build_args, exec_args)

    def _run_package(
        self,
        invocation: Invocation,
        workspace: WorkspaceMetadata,
        package: PackageInfo,
        build_args: tuple[str, ...],
        exec_args: tuple[str, ...],
    ) -> None:
        prepared: PreparedScript | None = None
        if invocation.script_call != "none":
            # Dependency and target errors surface before anything is built.
            prepared = prepare_post_build(
                invocation,
                workspace,
                package,
                toolchain=self.toolchain,
                env=self.env,
                cwd=self.cwd,
            )
            self.logger.log(
                package.name,
                "resolve",
                "Resolved build context.",
                extra=dict(prepared.contract),
            )

        self.logger.log(package.name, "outer_build", f"cargo {' '.join(build_args)}".rstrip())
        run_checked(
            [self.toolchain.cargo, *build_args],
            operation="outer_build",
            cwd=outer_build_dir(invocation, package, cwd=self.cwd),
        )
        if prepared is None:
            return

        try:
            if invocation.script_call == "between":
                artifact = discover_binary(prepared.context)
                artifact = self._run_script(package, prepared, artifact) or artifact
                self.logger.log(package.name, "execute", f"Executing {artifact}.")
                self.runner.execute_artifact(artifact, exec_args)
            else:
                binaries = existing_binaries(prepared.context)
                self._run_script(package, prepared, binaries[0] if len(binaries) == 1 else None)
        finally:
            if prepared.package is not None:
                log_path = prepared.package.root / LOG_FILE_NAME
                self.logger.to_json_lines(log_path, package=package.name)

    def _run_script(
        self,
        package: PackageInfo,
        prepared: PreparedScript,
        candidate: Path | None,
    ) -> Path | None:
        """Compile and run the script; return the binary it substituted, if any."""
        if prepared.package is not None:
            self.logger.log(package.name, "compile", f"Compiling {prepared.package.manifest_path}.")
        result = execute_script(prepared, runner=self.runner, candidate=candidate)
        if result is None:
            return None

        self.logger.log(
            package.name,
            "run",
            "Post-build script finished.",
            extra={"returncode": result.returncode, "contract_digest": prepared.contract.digest()},
        )
        if not result.ok:
            raise ChildProcessFailed(
                "Post-build script failed.",
                returncode=result.returncode,
                context={"operation": "run_script", "package": package.name},
            )
        if result.updated_bin is not None:
            self.logger.log(package.name, "run", f"Binary updated to {result.updated_bin}.")
        return result.updated_bin
