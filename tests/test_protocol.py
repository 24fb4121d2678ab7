import io
from pathlib import Path

import pytest

from cargo_post.errors import BinaryDiscoveryError, ProtocolError
from cargo_post.models import ResolvedContext
from cargo_post.runner import (
    discover_binary,
    executable_name,
    existing_binaries,
    parse_protocol_line,
    relay_script_output,
)


def test_ordinary_lines_are_not_protocol(tmp_path: Path) -> None:
    assert parse_protocol_line("hello", tmp_path / "app") is None
    assert parse_protocol_line("cargo:warning=careful", tmp_path / "app") is None


def test_updated_bin_for_candidate_is_accepted(tmp_path: Path) -> None:
    old, new = _touch(tmp_path / "app"), _touch(tmp_path / "app.signed")

    assert parse_protocol_line(f"cargo:updated-bin={old}={new}", old) == new


def test_updated_bin_for_unrelated_binary_is_fatal(tmp_path: Path) -> None:
    old, new = _touch(tmp_path / "app"), _touch(tmp_path / "app.signed")

    with pytest.raises(ProtocolError) as excinfo:
        parse_protocol_line(f"cargo:updated-bin={tmp_path / 'other'}={new}", old)

    assert "Unknown binary" in str(excinfo.value)
    assert excinfo.value.context["expected"] == str(old)


def test_updated_bin_without_candidate_is_fatal(tmp_path: Path) -> None:
    new = _touch(tmp_path / "app.signed")

    with pytest.raises(ProtocolError):
        parse_protocol_line(f"cargo:updated-bin={tmp_path / 'app'}={new}", None)


def test_missing_new_binary_is_fatal(tmp_path: Path) -> None:
    old = _touch(tmp_path / "app")

    with pytest.raises(ProtocolError) as excinfo:
        parse_protocol_line(f"cargo:updated-bin={old}={tmp_path / 'missing'}", old)

    assert "does not exist" in str(excinfo.value)


@pytest.mark.parametrize(
    "line",
    ["cargo:updated-bin=", "cargo:updated-bin=/only/old", "cargo:updated-bin==/new"],
)
def test_malformed_statements_are_fatal(tmp_path: Path, line: str) -> None:
    with pytest.raises(ProtocolError) as excinfo:
        parse_protocol_line(line, tmp_path / "app")

    assert "Malformed" in str(excinfo.value)


def test_relay_forwards_ordinary_lines_and_swallows_protocol(tmp_path: Path) -> None:
    old, new = _touch(tmp_path / "app"), _touch(tmp_path / "app.signed")
    out = io.StringIO()

    relayed, updated = relay_script_output(
        ["building\n", f"cargo:updated-bin={old}={new}\n", "done\n"],
        old,
        out,
    )

    assert relayed == ("building", "done")
    assert updated == new
    assert out.getvalue() == "building\ndone\n"


def test_relay_applies_chained_updates_in_order(tmp_path: Path) -> None:
    old = _touch(tmp_path / "app")
    signed = _touch(tmp_path / "app.signed")
    packed = _touch(tmp_path / "app.packed")

    _, updated = relay_script_output(
        [f"cargo:updated-bin={old}={signed}", f"cargo:updated-bin={signed}={packed}"],
        old,
        io.StringIO(),
    )

    assert updated == packed


def test_discover_binary_requires_exactly_one(tmp_path: Path) -> None:
    context = _context(tmp_path, out_bins=("app", "tool"))

    with pytest.raises(BinaryDiscoveryError) as nothing:
        discover_binary(context)
    assert "no binary" in str(nothing.value)

    app = _touch(context.out_dir / executable_name("app"))
    assert discover_binary(context) == app

    _touch(context.out_dir / executable_name("tool"))
    with pytest.raises(BinaryDiscoveryError) as ambiguous:
        discover_binary(context)
    assert "--bin" in str(ambiguous.value)
    assert len(existing_binaries(context)) == 2


def test_example_binaries_live_under_examples(tmp_path: Path) -> None:
    context = _context(tmp_path, out_bins=("examples/demo",))
    demo = _touch(context.out_dir / "examples" / executable_name("demo"))

    assert discover_binary(context) == demo


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("", encoding="utf-8")
    return path


def _context(tmp_path: Path, *, out_bins: tuple[str, ...]) -> ResolvedContext:
    return ResolvedContext(
        manifest_dir=tmp_path / "app",
        manifest_path=tmp_path / "app" / "Cargo.toml",
        target_dir=tmp_path / "target",
        profile="debug",
        build_command="cargo run",
        out_bins=out_bins,
    )
