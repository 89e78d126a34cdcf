"""Module entrypoint for ``python -m juggler``."""

from __future__ import annotations

from juggler.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
