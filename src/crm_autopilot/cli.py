"""CLI entry point for crm-autopilot."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table as RichTable

from crm_autopilot import WORKING_LEADS, __version__
from crm_autopilot.actions import Action, invoke, response_text
from crm_autopilot.edits import record_edit
from crm_autopilot.io import WorkbookStore, create_template, write_json
from crm_autopilot.logs import clear_logs
from crm_autopilot.models import RunReport
from crm_autopilot.notify import ConsoleNotifier, Notifier, SmtpNotifier

app = typer.Typer(
    name="crmauto",
    help="crm-autopilot — Renewal reminders, lead digests and staged lead imports.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"crm-autopilot v{__version__}")
        raise typer.Exit()


def _open_store(workbook: Path) -> WorkbookStore:
    try:
        return WorkbookStore.open(workbook)
    except (FileNotFoundError, ValueError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)


def _build_notifier(
    *,
    print_mail: bool,
    smtp_host: str | None,
    smtp_port: int,
    smtp_user: str | None,
    smtp_password: str | None,
    smtp_sender: str | None,
    smtp_tls: bool,
) -> Notifier:
    if print_mail:
        return ConsoleNotifier(console)
    if not smtp_host or not smtp_sender:
        raise ValueError(
            "SMTP delivery needs --smtp-host and --smtp-sender "
            "(or CRM_SMTP_HOST / CRM_SMTP_SENDER); use --print-mail to print instead"
        )
    return SmtpNotifier(
        host=smtp_host,
        port=smtp_port,
        sender=smtp_sender,
        username=smtp_user,
        password=smtp_password,
        use_tls=smtp_tls,
    )


def _print_report(report: RunReport) -> None:
    tbl = RichTable(title=f"{report.action}", show_lines=True)
    tbl.add_column("Check", style="bold")
    tbl.add_column("Result")
    for key, value in sorted(report.counts.items()):
        tbl.add_row(key, str(value))
    if report.message:
        tbl.add_row("Message", report.message)
    status = {
        "success": "[green]OK[/green]",
        "skipped": "[yellow]SKIPPED[/yellow]",
        "failed": "[red]FAIL[/red]",
    }[report.status]
    tbl.add_row("Status", status)
    console.print(tbl)


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """crm-autopilot CLI."""


# ── init command ─────────────────────────────────────────────────


@app.command()
def init(
    workbook: Path = typer.Option(
        ..., "--workbook", "-w", envvar="CRM_WORKBOOK", help="Path to the CRM workbook (.xlsx).",
    ),
) -> None:
    """Create an empty CRM workbook with every expected sheet."""
    try:
        path = create_template(workbook)
    except (FileExistsError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    console.print(f"  Workbook -> {path}")


# ── run command ──────────────────────────────────────────────────


@app.command()
def run(
    action: str = typer.Argument(
        ...,
        help="Action name: " + ", ".join(a.value for a in Action if a is not Action.UNKNOWN),
    ),
    workbook: Path = typer.Option(
        ..., "--workbook", "-w", envvar="CRM_WORKBOOK", help="Path to the CRM workbook (.xlsx).",
    ),
    today: datetime | None = typer.Option(
        None, "--today",
        formats=["%Y-%m-%d"],
        help="Override today's date (YYYY-MM-DD).",
    ),
    print_mail: bool = typer.Option(
        False, "--print-mail",
        help="Print notification emails to the console instead of sending them.",
    ),
    smtp_host: str | None = typer.Option(None, "--smtp-host", envvar="CRM_SMTP_HOST"),
    smtp_port: int = typer.Option(587, "--smtp-port", envvar="CRM_SMTP_PORT"),
    smtp_user: str | None = typer.Option(None, "--smtp-user", envvar="CRM_SMTP_USER"),
    smtp_password: str | None = typer.Option(
        None, "--smtp-password", envvar="CRM_SMTP_PASSWORD"
    ),
    smtp_sender: str | None = typer.Option(None, "--smtp-sender", envvar="CRM_SMTP_SENDER"),
    smtp_tls: bool = typer.Option(True, "--smtp-tls/--no-smtp-tls", envvar="CRM_SMTP_TLS"),
    report_path: Path | None = typer.Option(
        None, "--report",
        help="Write the run report as JSON to this path.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; errors are still shown.",
    ),
) -> None:
    """Run one action against the workbook."""
    echo = _printer(quiet)
    try:
        notifier = _build_notifier(
            print_mail=print_mail,
            smtp_host=smtp_host,
            smtp_port=smtp_port,
            smtp_user=smtp_user,
            smtp_password=smtp_password,
            smtp_sender=smtp_sender,
            smtp_tls=smtp_tls,
        )
    except ValueError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    store = _open_store(workbook)

    if not quiet:
        console.print(Panel(
            f"[bold]crm-autopilot[/bold] v{__version__}\n"
            f"Action:   {action}\nWorkbook: {workbook}",
            title="Run", border_style="blue",
        ))

    report = invoke(action, store, notifier, today=today, console=not quiet)

    if report_path:
        echo(f"  Report -> {write_json(report_path, report.to_dict())}")
    if not quiet:
        _print_report(report)

    reply = response_text(report)
    if report.status == "failed":
        _err(reply)
        raise typer.Exit(code=1)
    echo(f"[green]{reply}[/green]")


# ── serve command ────────────────────────────────────────────────


@app.command()
def serve(
    workbook: Path = typer.Option(
        ..., "--workbook", "-w", envvar="CRM_WORKBOOK", help="Path to the CRM workbook (.xlsx).",
    ),
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
    print_mail: bool = typer.Option(False, "--print-mail"),
    smtp_host: str | None = typer.Option(None, "--smtp-host", envvar="CRM_SMTP_HOST"),
    smtp_port: int = typer.Option(587, "--smtp-port", envvar="CRM_SMTP_PORT"),
    smtp_user: str | None = typer.Option(None, "--smtp-user", envvar="CRM_SMTP_USER"),
    smtp_password: str | None = typer.Option(
        None, "--smtp-password", envvar="CRM_SMTP_PASSWORD"
    ),
    smtp_sender: str | None = typer.Option(None, "--smtp-sender", envvar="CRM_SMTP_SENDER"),
    smtp_tls: bool = typer.Option(True, "--smtp-tls/--no-smtp-tls", envvar="CRM_SMTP_TLS"),
) -> None:
    """Serve the HTTP action endpoint (POST / with {"action": ...})."""
    import uvicorn

    from crm_autopilot.server import create_app

    try:
        notifier = _build_notifier(
            print_mail=print_mail,
            smtp_host=smtp_host,
            smtp_port=smtp_port,
            smtp_user=smtp_user,
            smtp_password=smtp_password,
            smtp_sender=smtp_sender,
            smtp_tls=smtp_tls,
        )
    except ValueError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    if not workbook.exists():
        _err(f"Workbook not found: {workbook}")
        raise typer.Exit(code=2)

    console.print(Panel(
        f"[bold]crm-autopilot[/bold] v{__version__}\n"
        f"Workbook: {workbook}\nListening on http://{host}:{port}",
        title="Serve", border_style="blue",
    ))
    uvicorn.run(create_app(lambda: WorkbookStore.open(workbook), notifier), host=host, port=port)


# ── clear-logs command ───────────────────────────────────────────


@app.command("clear-logs")
def clear_logs_command(
    workbook: Path = typer.Option(
        ..., "--workbook", "-w", envvar="CRM_WORKBOOK", help="Path to the CRM workbook (.xlsx).",
    ),
) -> None:
    """Delete every Logs row except the header."""
    store = _open_store(workbook)
    try:
        removed = clear_logs(store)
        store.save()
    except Exception as exc:
        _err(f"Error clearing logs: {exc}")
        raise typer.Exit(code=1)
    console.print(f"All logs cleared (except header): {removed} rows removed.")


# ── record-edit command ──────────────────────────────────────────


@app.command("record-edit")
def record_edit_command(
    workbook: Path = typer.Option(
        ..., "--workbook", "-w", envvar="CRM_WORKBOOK", help="Path to the CRM workbook (.xlsx).",
    ),
    row: int = typer.Option(..., "--row", min=1, help="1-based sheet row that was edited."),
    column: int = typer.Option(..., "--column", min=1, help="1-based sheet column."),
    table: str = typer.Option(WORKING_LEADS, "--table"),
) -> None:
    """Stamp an edited WorkingLeads row and refresh its follow-up month."""
    store = _open_store(workbook)
    try:
        writes = record_edit(store, table, row, column, datetime.now())
        store.save()
    except Exception as exc:
        _err(f"Error recording edit: {exc}")
        raise typer.Exit(code=1)
    for write in writes:
        console.print(f"  R{write.row}C{write.column} <- {write.value}")
