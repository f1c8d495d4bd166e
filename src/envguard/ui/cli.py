"""Command-line interface router for envguard."""

from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from envguard.config import ConfigEngine
from envguard.constants import CONFIG_DIR_ENV_VAR
from envguard.environment import ENVIRONMENT_NAMES
from envguard.errors import ConfigValidationError, SourceUnavailableError
from envguard.main import ExitCode
from envguard.observability.logging import setup_logging, shutdown_logging
from envguard.ui.render import CLIRenderer, create_renderer
from envguard.utils.hashing import is_sha256_hex


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = ExitCode.VALIDATION_REJECTED

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="envguard",
        description=(
            "envguard: layered environment configuration with validation.\n\n"
            "Common workflows:\n"
            "  envguard check --env production     Gate a release on validation\n"
            "  envguard show                       Print the redacted effective config\n"
            "  envguard policy --env staging       Print the resolved security policy\n"
            "  envguard hash --expect <sha256>     Detect configuration drift\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config-dir",
        default=None,
        help=(
            "Directory holding config.default and config.<env> "
            f"(default: ${CONFIG_DIR_ENV_VAR}, else the working directory)."
        ),
    )
    common.add_argument(
        "--env",
        dest="environment",
        choices=ENVIRONMENT_NAMES,
        default=None,
        help="Environment to load (default: ENVIRONMENT from the process or base file).",
    )
    common.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Emit machine-readable JSON on stdout.",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Log informational events to stderr.",
    )
    common.add_argument(
        "--log-file",
        default=None,
        help="Also append JSON-lines logs to this file.",
    )
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # check ---------------------------------------------------------------
    check_parser = subparsers.add_parser(
        "check",
        parents=[common],
        help="Validate the configuration and enforce the environment policy",
        description=(
            "Load and validate the configuration. Errors fail the check when strict\n"
            "validation applies (the environment policy decides unless overridden).\n\n"
            "Examples:\n"
            "  envguard check --env production\n"
            "  envguard check --lenient --json\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    strictness = check_parser.add_mutually_exclusive_group()
    strictness.add_argument(
        "--strict",
        dest="strict",
        action="store_const",
        const=True,
        default=None,
        help="Fail on any validation error regardless of policy.",
    )
    strictness.add_argument(
        "--lenient",
        dest="strict",
        action="store_const",
        const=False,
        help="Report validation errors without failing.",
    )
    check_parser.set_defaults(handler=_cmd_check)

    # show ----------------------------------------------------------------
    show_parser = subparsers.add_parser(
        "show",
        parents=[common],
        help="Print the effective configuration with secrets redacted",
    )
    show_parser.set_defaults(handler=_cmd_show)

    # policy --------------------------------------------------------------
    policy_parser = subparsers.add_parser(
        "policy",
        parents=[common],
        help="Print the security policy for the active environment",
    )
    policy_parser.set_defaults(handler=_cmd_policy)

    # hash ----------------------------------------------------------------
    hash_parser = subparsers.add_parser(
        "hash",
        parents=[common],
        help="Print the stable configuration hash (secrets excluded)",
        description=(
            "Compute a SHA-256 over the non-sensitive effective configuration.\n"
            "With --expect, exit 1 when the hash differs (configuration drift).\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    hash_parser.add_argument(
        "--expect",
        default=None,
        metavar="SHA256",
        help="Expected hex digest; mismatch exits with status 1.",
    )
    hash_parser.set_defaults(handler=_cmd_hash)

    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return int(ExitCode.CONFIG_ERROR)

    setup_logging(
        "INFO" if _flag(namespace, "verbose") else "WARNING",
        stream=sys.stderr,
        log_file=namespace.log_file,
    )
    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return int(exc.exit_code)
    finally:
        shutdown_logging()
    return int(result)


def main(argv: Sequence[str] | None = None) -> int:
    return run_cli(argv)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_check(args: argparse.Namespace) -> int:
    engine = _load_engine(args)
    environment = engine.current_environment()
    rejected = False
    try:
        result = engine.assert_valid(strict=args.strict)
    except ConfigValidationError as exc:
        result = exc.result
        rejected = True

    payload: dict[str, object] = {
        "command": "check",
        "environment": environment.value,
        "sources": list(engine.sources),
        "rejected": rejected,
        **result.to_dict(),
    }
    if _flag(args, "json"):
        _emit_json(payload)
        return int(ExitCode.VALIDATION_REJECTED if rejected else ExitCode.SUCCESS)

    renderer = _get_renderer(args)
    renderer.heading(f"envguard check ({environment.value})")
    for error in result.errors:
        renderer.fail(error)
    for warning in result.warnings:
        renderer.warning(warning)

    if rejected:
        renderer.text("\nConfiguration rejected.")
        return int(ExitCode.VALIDATION_REJECTED)
    if result.errors:
        renderer.text("\nConfiguration has errors (not enforced).")
    else:
        renderer.ok("configuration is valid")
    return int(ExitCode.SUCCESS)


def _cmd_show(args: argparse.Namespace) -> int:
    engine = _load_engine(args)
    redacted = engine.redacted_dump()
    payload: dict[str, object] = {
        "command": "show",
        "environment": engine.current_environment().value,
        "sources": list(engine.sources),
        "config": redacted,
    }

    if _flag(args, "json"):
        _emit_json(payload)
        return int(ExitCode.SUCCESS)

    renderer = _get_renderer(args)
    renderer.kv("Environment", payload["environment"])
    renderer.section("Sources:")
    renderer.items(engine.sources)
    renderer.section("Configuration:")
    renderer.table(("KEY", "VALUE"), [(key, redacted[key]) for key in sorted(redacted)])
    return int(ExitCode.SUCCESS)


def _cmd_policy(args: argparse.Namespace) -> int:
    engine = _load_engine(args)
    policy = engine.resolve_policy()
    payload: dict[str, object] = {"command": "policy", "policy": policy.to_dict()}

    if _flag(args, "json"):
        _emit_json(payload)
        return int(ExitCode.SUCCESS)

    renderer = _get_renderer(args)
    renderer.heading(f"Security policy ({policy.environment.value})")
    for key, value in policy.to_dict().items():
        if key != "environment":
            renderer.kv(f"  {key}", _format_scalar(value))
    return int(ExitCode.SUCCESS)


def _cmd_hash(args: argparse.Namespace) -> int:
    expected: str | None = None
    if args.expect is not None:
        expected = args.expect.strip().lower()
        if not is_sha256_hex(expected):
            raise CLIError(
                "--expect must be a 64-character hex SHA-256 digest",
                exit_code=ExitCode.CONFIG_ERROR,
            )

    engine = _load_engine(args)
    digest = engine.stable_hash()
    matches = None if expected is None else digest == expected
    payload: dict[str, object] = {
        "command": "hash",
        "environment": engine.current_environment().value,
        "sha256": digest,
        "expected": expected,
        "matches": matches,
    }
    exit_code = ExitCode.VALIDATION_REJECTED if matches is False else ExitCode.SUCCESS

    if _flag(args, "json"):
        _emit_json(payload)
        return int(exit_code)

    renderer = _get_renderer(args)
    renderer.text(digest)
    if matches is True:
        renderer.ok("hash matches expected value")
    elif matches is False:
        renderer.fail(f"configuration drift: expected {expected}")
    return int(exit_code)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_engine(args: argparse.Namespace) -> ConfigEngine:
    config_dir = _config_dir(args)
    engine = ConfigEngine(config_dir)
    try:
        engine.initialize(args.environment)
    except SourceUnavailableError as exc:
        raise CLIError(str(exc), exit_code=ExitCode.CONFIG_ERROR) from exc
    return engine


def _config_dir(args: argparse.Namespace) -> Path:
    raw = args.config_dir or os.environ.get(CONFIG_DIR_ENV_VAR) or "."
    candidate = Path(raw).expanduser()
    if not candidate.is_dir():
        raise CLIError(
            f"config directory is not a directory: {candidate}",
            exit_code=ExitCode.CONFIG_ERROR,
        )
    return candidate


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=_flag(args, "no_color"))


def _format_scalar(value: object) -> str:
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = ["CLIError", "build_parser", "main", "run_cli"]
