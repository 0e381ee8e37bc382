"""Entry point for `python -m stackplan`.

Usage:
    python -m stackplan plan
    uv run python -m stackplan deploy --state state.json
"""

from __future__ import annotations

from stackplan.cli import cli

cli(prog_name="stackplan")
