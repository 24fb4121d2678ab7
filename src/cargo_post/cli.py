"""`cargo post` command-line entry point.

Usage:
    cargo post <cargo-command> [cargo-args...] [-- artifact-args...]
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from importlib.metadata import PackageNotFoundError, version

from cargo_post.errors import CargoPostError, ChildProcessFailed
from cargo_post.options import parse_invocation
from cargo_post.pipeline import Pipeline

USAGE = """\
Run a post-build script after cargo builds a package.

Usage:
    cargo post <command> [<args>...] [-- <artifact-args>...]

The script is read from `post_build.rs` next to the package's Cargo.toml.
Its dependencies go in `[package.metadata.cargo-post.dependencies]`.
"""


def _version() -> str:
    try:
        return version("cargo-post")
    except PackageNotFoundError:
        return "unknown"


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    # cargo invokes external subcommands as `cargo-post post <args>`.
    if args[:1] == ["post"]:
        args = args[1:]
    if args[:1] == ["--help"]:
        print(USAGE)
        return 0
    if args[:1] == ["--version"]:
        print(f"cargo-post {_version()}")
        return 0

    try:
        Pipeline().run(parse_invocation(args))
    except ChildProcessFailed as exc:
        return exc.returncode
    except CargoPostError as exc:
        print(f"error[{exc.code}]: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
