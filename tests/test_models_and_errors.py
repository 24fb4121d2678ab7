from pathlib import Path

from cargo_post.errors import (
    BinaryDiscoveryError,
    CargoPostError,
    ChildProcessFailed,
    ConfigError,
    DependencyError,
    ErrorCode,
    ProtocolError,
    ResolutionError,
    SpawnError,
)
from cargo_post.models import ResolvedContext


def test_error_codes_are_stable_and_machine_readable() -> None:
    errors = [
        ConfigError("bad config"),
        ResolutionError("ambiguous"),
        DependencyError("missing dependency"),
        ProtocolError("bad line"),
        BinaryDiscoveryError("nothing to run"),
        SpawnError("cargo not found"),
        ChildProcessFailed("cargo failed", returncode=2),
    ]
    assert [error.code for error in errors] == [
        ErrorCode.CONFIG.value,
        ErrorCode.RESOLUTION.value,
        ErrorCode.DEPENDENCY.value,
        ErrorCode.PROTOCOL.value,
        ErrorCode.BINARY_DISCOVERY.value,
        ErrorCode.SPAWN.value,
        ErrorCode.CHILD_EXIT.value,
    ]


def test_error_rendering_includes_hint_and_context() -> None:
    error = DependencyError(
        "Dependency `helper` does not exist.",
        hint="Fix the path.",
        context={"dependency": "helper", "empty": ""},
    )

    rendered = str(error)
    assert rendered.splitlines() == [
        "Dependency `helper` does not exist.",
        "Hint: Fix the path.",
        "  dependency: helper",
    ]
    assert error.context == {"dependency": "helper"}
    assert error.to_dict() == {
        "code": "E_DEPENDENCY",
        "message": "Dependency `helper` does not exist.",
        "hint": "Fix the path.",
        "context": {"dependency": "helper"},
    }


def test_codes_are_declared_per_error_class() -> None:
    assert DependencyError.code is ErrorCode.DEPENDENCY
    assert isinstance(SpawnError("x"), CargoPostError)
    assert str(ProtocolError("bad line", context={"line": ""})) == "bad line"


def test_child_failure_defaults_to_exit_code_one() -> None:
    assert ChildProcessFailed("signalled", returncode=-15).returncode == 1
    assert ChildProcessFailed("unknown", returncode=None).returncode == 1
    assert ChildProcessFailed("failed", returncode=7).context["returncode"] == "7"


def test_context_paths_derive_from_target_dir() -> None:
    context = ResolvedContext(
        manifest_dir=Path("/ws/app"),
        manifest_path=Path("/ws/app/Cargo.toml"),
        target_dir=Path("/ws/target"),
        profile="release",
        build_command="cargo build --release",
        target="x86_64-unknown-none",
        target_triple="x86_64-unknown-none",
    )

    assert context.out_dir == Path("/ws/target/x86_64-unknown-none/release")
    assert context.script_path == Path("/ws/app/post_build.rs")
    assert context.script_package_dir == Path("/ws/target/post_build_script_manifest")
