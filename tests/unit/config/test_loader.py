"""
envguard - unit tests for the layered config loader

File: tests/unit/config/test_loader.py

Purpose
- Validate source parsing, environment selection, and layer precedence.

What this test file should cover
- Precedence: test override > process env > config.<env> > config.default.
- Line parsing rules (comments, blank lines, first '=' split, last line wins).
- Missing-file behavior for the base and environment sources.
"""

from __future__ import annotations

import string
from pathlib import Path

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from structlog.testing import capture_logs

from envguard.config.loader import (
    SOURCE_PROCESS_ENV,
    SOURCE_TEST_OVERRIDE,
    ConfigSource,
    parse_source_text,
    resolve_environment,
)
from envguard.environment import Environment
from envguard.errors import EnvguardError, SourceUnavailableError


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _render(values: dict[str, str]) -> str:
    return "".join(f"{key}={value}\n" for key, value in values.items())


@pytest.mark.unit
def test_parse_source_text_skips_comments_blank_and_malformed_lines() -> None:
    text = "\n".join(
        [
            "# leading comment",
            "",
            "   ",
            "APP_NAME = Demo App ",
            "  # indented comment",
            "no separator here",
            "=value-without-key",
            "API_BASE_URL=https://api.example.com/path?a=b",
        ]
    )

    with capture_logs() as logs:
        parsed = parse_source_text(text, source_name="config.default")

    assert parsed == {
        "APP_NAME": "Demo App",
        "API_BASE_URL": "https://api.example.com/path?a=b",
    }
    skipped = [entry for entry in logs if entry["event"] == "config_line_skipped"]
    assert [entry["line"] for entry in skipped] == [6, 7]
    assert all(entry["source"] == "config.default" for entry in skipped)


@pytest.mark.unit
def test_parse_source_text_last_duplicate_wins_and_empty_value_is_kept() -> None:
    parsed = parse_source_text("LOG_LEVEL=DEBUG\nAPP_NAME=x\nLOG_LEVEL=INFO\nDEMO_USERNAME=\n")

    assert parsed["LOG_LEVEL"] == "INFO"
    assert list(parsed) == ["APP_NAME", "LOG_LEVEL", "DEMO_USERNAME"]
    assert parsed["DEMO_USERNAME"] == ""


@pytest.mark.unit
def test_resolve_environment_order_and_fallback() -> None:
    base = {"ENVIRONMENT": "staging"}

    explicit = resolve_environment("production", {"ENVIRONMENT": "test"}, base)
    assert explicit is Environment.PRODUCTION
    assert resolve_environment(Environment.TEST, {}, base) is Environment.TEST
    assert resolve_environment(None, {"ENVIRONMENT": "Test"}, base) is Environment.TEST
    assert resolve_environment(None, {}, base) is Environment.STAGING
    assert resolve_environment(None, {}, {}) is Environment.DEVELOPMENT
    override = {"ENVIRONMENT": "production"}
    assert (
        resolve_environment(None, {"ENVIRONMENT": "test"}, base, override=override)
        is Environment.PRODUCTION
    )
    assert resolve_environment("staging", {}, base, override=override) is Environment.STAGING
    # An unrecognised higher-precedence value selects development, not the base file's value.
    assert resolve_environment(None, {"ENVIRONMENT": "prod"}, base) is Environment.DEVELOPMENT


@pytest.mark.unit
def test_resolve_environment_rejects_unknown_explicit_name() -> None:
    with pytest.raises(ValueError, match="unknown environment"):
        resolve_environment("qa", {}, {})


@pytest.mark.unit
def test_load_merges_layers_in_precedence_order(tmp_path: Path) -> None:
    _write(
        tmp_path / "config.default",
        "ENVIRONMENT=staging\nAPP_NAME=base\nLOG_LEVEL=DEBUG\nREQUEST_TIMEOUT_SECONDS=10\n",
    )
    _write(tmp_path / "config.staging", "LOG_LEVEL=INFO\nREQUEST_TIMEOUT_SECONDS=20\n")
    source = ConfigSource(tmp_path, environ={"REQUEST_TIMEOUT_SECONDS": " 30 ", "HOME": "/root"})

    loaded = source.load(test_override={"APP_NAME": "override"})

    assert loaded.environment is Environment.STAGING
    assert dict(loaded.values) == {
        "ENVIRONMENT": "staging",
        "APP_NAME": "override",
        "LOG_LEVEL": "INFO",
        "REQUEST_TIMEOUT_SECONDS": "30",
    }
    assert loaded.sources == (
        str(tmp_path / "config.default"),
        str(tmp_path / "config.staging"),
        SOURCE_PROCESS_ENV,
        SOURCE_TEST_OVERRIDE,
    )


@pytest.mark.unit
def test_load_result_is_read_only(tmp_path: Path) -> None:
    _write(tmp_path / "config.default", "APP_NAME=base\n")

    loaded = ConfigSource(tmp_path, environ={}).load()

    with pytest.raises(TypeError):
        loaded.values["APP_NAME"] = "changed"  # type: ignore[index]


@pytest.mark.unit
def test_process_env_overrides_only_recognised_keys(tmp_path: Path) -> None:
    _write(tmp_path / "config.default", "CUSTOM_FLAG=file\n")
    environ = {
        "CUSTOM_FLAG": "env",
        "IS_DEBUG": "false",
        "PATH": "/usr/bin",
        "UNRELATED_TOKEN": "secret",
    }

    loaded = ConfigSource(tmp_path, environ=environ).load()

    assert loaded.values["CUSTOM_FLAG"] == "env"
    assert loaded.values["IS_DEBUG"] == "false"
    assert "PATH" not in loaded.values
    assert "UNRELATED_TOKEN" not in loaded.values


@pytest.mark.unit
def test_missing_environment_file_is_not_an_error(tmp_path: Path) -> None:
    _write(tmp_path / "config.default", "API_BASE_URL=https://api.example.com\n")

    with capture_logs() as logs:
        loaded = ConfigSource(tmp_path, environ={}).load("production")

    assert loaded.environment is Environment.PRODUCTION
    assert loaded.values["API_BASE_URL"] == "https://api.example.com"
    assert loaded.sources == (str(tmp_path / "config.default"),)
    assert any(entry["event"] == "config_source_missing" for entry in logs)


@pytest.mark.unit
def test_missing_base_file_is_fatal_without_test_override(tmp_path: Path) -> None:
    source = ConfigSource(tmp_path, environ={})

    with pytest.raises(SourceUnavailableError, match="config.default") as exc_info:
        source.load()

    assert isinstance(exc_info.value, EnvguardError)
    assert isinstance(exc_info.value, FileNotFoundError)


@pytest.mark.unit
def test_missing_base_file_is_allowed_with_test_override(tmp_path: Path) -> None:
    loaded = ConfigSource(tmp_path, environ={}).load(test_override={"APP_NAME": "only"})

    assert dict(loaded.values) == {"APP_NAME": "only"}
    assert loaded.sources == (SOURCE_TEST_OVERRIDE,)


@pytest.mark.unit
def test_undecodable_base_file_is_source_unavailable(tmp_path: Path) -> None:
    (tmp_path / "config.default").write_bytes(b"APP_NAME=\xff\xfe\n")

    with pytest.raises(SourceUnavailableError, match="unable to read"):
        ConfigSource(tmp_path, environ={}).load()


@pytest.mark.unit
def test_explicit_environment_seeds_environment_key(tmp_path: Path) -> None:
    _write(tmp_path / "config.default", "APP_NAME=base\n")

    with capture_logs() as logs:
        seeded = ConfigSource(tmp_path, environ={}).load("test")

    assert seeded.values["ENVIRONMENT"] == "test"
    assert not any(entry["event"] == "config_environment_mismatch" for entry in logs)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("base", "environ"),
    [
        ("ENVIRONMENT=development\n", {}),
        ("", {"ENVIRONMENT": "development"}),
        ("ENVIRONMENT=staging\n", {"ENVIRONMENT": "development"}),
    ],
)
def test_explicit_environment_overrules_declared_environment(
    tmp_path: Path, base: str, environ: dict[str, str]
) -> None:
    _write(tmp_path / "config.default", f"{base}API_BASE_URL=https://api.example.com\n")
    _write(tmp_path / "config.production", "IS_DEBUG=true\n")

    with capture_logs() as logs:
        loaded = ConfigSource(tmp_path, environ=environ).load("production")

    assert loaded.environment is Environment.PRODUCTION
    assert loaded.values["ENVIRONMENT"] == "production"
    assert loaded.values["IS_DEBUG"] == "true"
    assert str(tmp_path / "config.production") in loaded.sources
    mismatch = [entry for entry in logs if entry["event"] == "config_environment_mismatch"]
    assert mismatch == [
        {
            "event": "config_environment_mismatch",
            "log_level": "warning",
            "requested": "production",
            "declared": "development",
        }
    ]


@pytest.mark.unit
def test_environment_file_cannot_redeclare_its_environment(tmp_path: Path) -> None:
    _write(tmp_path / "config.default", "ENVIRONMENT=production\n")
    _write(tmp_path / "config.production", "ENVIRONMENT=development\nIS_DEBUG=true\n")

    with capture_logs() as logs:
        loaded = ConfigSource(tmp_path, environ={}).load()

    assert loaded.environment is Environment.PRODUCTION
    assert loaded.values["ENVIRONMENT"] == "production"
    assert any(entry["event"] == "config_environment_mismatch" for entry in logs)


@pytest.mark.unit
def test_test_override_environment_selects_override_file(tmp_path: Path) -> None:
    _write(tmp_path / "config.default", "ENVIRONMENT=development\nLOG_LEVEL=DEBUG\n")
    _write(tmp_path / "config.staging", "LOG_LEVEL=WARNING\n")

    loaded = ConfigSource(tmp_path, environ={"ENVIRONMENT": "test"}).load(
        test_override={"ENVIRONMENT": " Staging"}
    )

    assert loaded.environment is Environment.STAGING
    assert loaded.values["ENVIRONMENT"] == "staging"
    assert loaded.values["LOG_LEVEL"] == "WARNING"
    assert loaded.sources == (
        str(tmp_path / "config.default"),
        str(tmp_path / "config.staging"),
        SOURCE_PROCESS_ENV,
        SOURCE_TEST_OVERRIDE,
    )


@pytest.mark.unit
def test_unrecognised_declared_environment_is_kept_for_validation(tmp_path: Path) -> None:
    _write(tmp_path / "config.default", "ENVIRONMENT=staging\n")

    loaded = ConfigSource(tmp_path, environ={"ENVIRONMENT": "prod"}).load()

    assert loaded.environment is Environment.DEVELOPMENT
    assert loaded.values["ENVIRONMENT"] == "prod"


@pytest.mark.unit
def test_test_override_rejects_non_string_values(tmp_path: Path) -> None:
    bad_override: dict[str, object] = {"REQUEST_TIMEOUT_SECONDS": 5}

    source = ConfigSource(tmp_path, environ={})

    with pytest.raises(TypeError, match="must be strings"):
        source.load(test_override=bad_override)  # type: ignore[arg-type]


_key = st.from_regex(r"[A-Z][A-Z0-9_]{0,11}", fullmatch=True).filter(
    lambda item: item != "ENVIRONMENT"
)
_value = st.text(alphabet=string.ascii_letters + string.digits + "-._:/", min_size=1, max_size=12)


@pytest.mark.unit
@settings(
    max_examples=40,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)
@given(
    base=st.dictionaries(_key, _value, max_size=6),
    override=st.dictionaries(_key, _value, max_size=6),
)
def test_override_file_wins_for_every_shared_key(
    tmp_path: Path, base: dict[str, str], override: dict[str, str]
) -> None:
    _write(tmp_path / "config.default", _render(base))
    _write(tmp_path / "config.development", _render(override))

    loaded = ConfigSource(tmp_path, environ={}).load()

    for key in base.keys() | override.keys():
        expected = override[key] if key in override else base[key]
        assert loaded.values[key] == expected


@pytest.mark.unit
@settings(
    max_examples=40,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)
@given(
    shared=st.dictionaries(_key, _value, min_size=1, max_size=5),
    process_value=_value,
    override_value=_value,
)
def test_process_env_and_test_override_beat_files(
    tmp_path: Path, shared: dict[str, str], process_value: str, override_value: str
) -> None:
    _write(tmp_path / "config.default", _render(shared))
    _write(tmp_path / "config.development", _render(shared))
    environ = {key: process_value for key in shared}
    source = ConfigSource(tmp_path, environ=environ)

    from_process = source.load()
    from_override = source.load(test_override={key: override_value for key in shared})

    for key in shared:
        assert from_process.values[key] == process_value
        assert from_override.values[key] == override_value
