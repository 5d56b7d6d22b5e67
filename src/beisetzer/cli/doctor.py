"""beisetzer doctor: validate config, catalog connectivity and storage."""

from __future__ import annotations

import json
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table


def _check_config() -> tuple[bool, str]:
    """Verify config loads without error."""
    try:
        from beisetzer.config import get_settings
        settings = get_settings()
        url = settings.database.sqlalchemy_url()
        return True, f"db={url.render_as_string(hide_password=True)}, concurrency={settings.dispatcher.concurrency}"
    except Exception as e:
        return False, str(e)


def _check_catalog() -> tuple[bool, str]:
    """Ping the catalog and count publications."""
    try:
        from beisetzer.service import build_catalog
        catalog = build_catalog()
        try:
            catalog.ping()
            n = len(catalog.list_all())
        finally:
            catalog.close()
        return True, f"{n} publication(s)"
    except Exception as e:
        return False, str(e)


def _check_storage() -> tuple[bool, str]:
    """Storage root must exist and be readable and writable."""
    try:
        from beisetzer.config import get_settings
        root = Path(get_settings().storage.root)
        if not root.is_dir():
            return False, f"{root} is not a directory"
        if not os.access(root, os.R_OK | os.W_OK):
            return False, f"{root} is not readable and writable"
        return True, str(root.resolve())
    except Exception as e:
        return False, str(e)


def _check_extractor() -> tuple[bool, str]:
    """PyMuPDF must be importable."""
    try:
        import fitz
        return True, f"PyMuPDF {fitz.VersionBind}"
    except Exception as e:
        return False, str(e)


def _run_checks() -> list[dict]:
    """Run all checks and return results."""
    checks = [
        ("Config", _check_config),
        ("Catalog", _check_catalog),
        ("Storage", _check_storage),
        ("Extractor", _check_extractor),
    ]
    results = []
    for name, check_fn in checks:
        ok, detail = check_fn()
        results.append({"check": name, "ok": ok, "detail": detail})
    return results


def doctor_cmd():
    """Check configuration, catalog connectivity and storage."""
    from beisetzer.cli.app import is_json

    results = _run_checks()
    all_ok = all(r["ok"] for r in results)

    if is_json():
        print(json.dumps(results, indent=2))
        if not all_ok:
            raise typer.Exit(code=1)
        return

    console = Console()
    table = Table(title="beisetzer doctor", show_lines=True)
    table.add_column("Check", style="bold")
    table.add_column("Status")
    table.add_column("Detail")

    for r in results:
        status = "[green]PASS[/green]" if r["ok"] else "[red]FAIL[/red]"
        table.add_row(r["check"], status, r["detail"])

    console.print(table)
    if all_ok:
        console.print("\n[bold green]All checks passed.[/bold green]")
    else:
        console.print("\n[bold yellow]Some checks failed. See details above.[/bold yellow]")
        raise typer.Exit(code=1)
