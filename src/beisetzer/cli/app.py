"""beisetzer CLI: Typer entrypoint with global options."""

from __future__ import annotations

import logging
import os
from typing import Annotated, Optional

import typer

app = typer.Typer(
    name="beisetzer",
    help="Beisetzer: keeps hashes, full text and cover images of the publications catalog up to date.",
    no_args_is_help=True,
)

# Global state shared across subcommands
_state: dict = {"json": False, "verbose": False}


def is_json() -> bool:
    """Check if --json output mode is active."""
    return _state["json"]


def setup_logging() -> None:
    """Configure root logging from settings (or DEBUG with --verbose)."""
    from beisetzer.config import get_settings

    level = "DEBUG" if _state["verbose"] else get_settings().logging.level
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@app.callback()
def main(
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON (machine-friendly)")
    ] = False,
    root: Annotated[
        Optional[str], typer.Option("--root", help="Override project root directory")
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log at DEBUG level")
    ] = False,
):
    """Global options applied before any subcommand."""
    _state["json"] = json_output
    _state["verbose"] = verbose
    if root:
        os.environ["BEISETZER_ROOT"] = root


# Register subcommands -------------------------------------------------------

from beisetzer.cli.doctor import doctor_cmd  # noqa: E402
from beisetzer.cli.run_cmd import init_db_cmd, run_cmd, scan_cmd  # noqa: E402

app.command(name="run", help="Run the periodic reconciliation service.")(run_cmd)
app.command(name="scan", help="Run a single scan immediately and print a report.")(scan_cmd)
app.command(name="doctor", help="Check configuration, catalog and storage.")(doctor_cmd)
app.command(name="init-db", help="Create the publications table if missing.")(init_db_cmd)
