"""Module entrypoint for ``python -m envguard``."""

from __future__ import annotations

from envguard.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
