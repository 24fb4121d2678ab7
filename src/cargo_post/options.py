"""Single-pass parsing of the `cargo post` argument list."""

from __future__ import annotations

from collections.abc import Sequence

from cargo_post.errors import ResolutionError
from cargo_post.models import Invocation, ScriptCall

AFTER_COMMANDS = frozenset({"b", "build", "xbuild"})
BETWEEN_COMMANDS = frozenset({"r", "t", "run", "test", "bench", "publish", "install"})
NO_CALL_COMMANDS = frozenset(
    {"c", "check", "clean", "doc", "new", "init", "update", "search", "uninstall"},
)


def classify_command(command: str | None) -> ScriptCall:
    if command is None:
        return "none"
    if command in AFTER_COMMANDS:
        return "after"
    if command in BETWEEN_COMMANDS:
        return "between"
    if command in NO_CALL_COMMANDS:
        return "none"
    raise ResolutionError(
        f"Unknown cargo command `cargo {command}`.",
        hint="Supported commands: build, run, test, bench, check, clean, doc and friends.",
        context={"command": command},
    )


def parse_invocation(args: Sequence[str]) -> Invocation:
    """Parse everything after `cargo post` into an immutable `Invocation`.

    Flags are only recognized before a `--` separator; arguments after it
    belong to the executed artifact.
    """
    args = tuple(args)
    command = args[0] if args and not args[0].startswith("-") else None
    script_call = classify_command(command)

    flags = args[: args.index("--")] if "--" in args else args
    return Invocation(
        args=args,
        command=command,
        script_call=script_call,
        manifest_path=_flag_value(flags, "--manifest-path"),
        package=_flag_value(flags, "--package", short="-p"),
        target=_flag_value(flags, "--target"),
        release="--release" in flags or "-r" in flags[1:],
        bin=_flag_value(flags, "--bin"),
        example=None if "--examples" in flags else _flag_value(flags, "--example"),
        all_examples="--examples" in flags,
    )


def _flag_value(flags: Sequence[str], name: str, *, short: str | None = None) -> str | None:
    names = (name,) if short is None else (name, short)
    for index, arg in enumerate(flags):
        if arg in names:
            if index + 1 >= len(flags) or flags[index + 1].startswith("-"):
                raise ResolutionError(
                    f"Missing value after `{arg}`.",
                    context={"flag": arg},
                )
            return flags[index + 1]
        if arg.startswith(f"{name}="):
            return arg.removeprefix(f"{name}=")
    return None
