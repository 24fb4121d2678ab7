"""Post-build script support for cargo: context resolution and script orchestration."""

from .environment import EnvironmentContract, build_environment
from .errors import (
    BinaryDiscoveryError,
    CargoPostError,
    ChildProcessFailed,
    ConfigError,
    DependencyError,
    ProtocolError,
    ResolutionError,
    SpawnError,
)
from .models import (
    EphemeralPackage,
    Invocation,
    PackageInfo,
    ResolvedContext,
    ScriptInvocationResult,
    WorkspaceMetadata,
)
from .options import parse_invocation
from .pipeline import Pipeline, run_post_build_script
from .resolve import resolve_context

__all__ = [
    "BinaryDiscoveryError",
    "CargoPostError",
    "ChildProcessFailed",
    "ConfigError",
    "DependencyError",
    "EnvironmentContract",
    "EphemeralPackage",
    "Invocation",
    "PackageInfo",
    "Pipeline",
    "ProtocolError",
    "ResolutionError",
    "ResolvedContext",
    "ScriptInvocationResult",
    "SpawnError",
    "WorkspaceMetadata",
    "build_environment",
    "parse_invocation",
    "resolve_context",
    "run_post_build_script",
]
