"""Module entrypoint for ``python -m taskboard``."""

from __future__ import annotations

from taskboard.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
