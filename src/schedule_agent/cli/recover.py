"""CLI: schedule-agent recover"""

import json

import click
from rich.console import Console
from rich.table import Table

from schedule_agent.models.schedule import ScheduleProposal
from schedule_agent.parsing.pipeline import recover_schedule

console = Console()


def _load_settings():
    from schedule_agent.cli.main import _load_settings
    return _load_settings()


def _fmt_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def render_proposal(proposal: ScheduleProposal, out: Console = console) -> None:
    if not proposal.success:
        out.print(f"[red]{proposal.message}: {proposal.error}[/red]")
        if proposal.raw_response:
            out.print(f"[dim]{proposal.raw_response}[/dim]", markup=False, highlight=False)
        return
    table = Table(title=f"Proposed schedule ({proposal.total_sessions} sessions)")
    table.add_column("Session", style="bold")
    table.add_column("Location")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Speakers")
    table.add_column("Format")
    for slot in proposal.schedule:
        table.add_row(
            slot.session_name, slot.location, _fmt_time(slot.start_time),
            _fmt_time(slot.end_time), ", ".join(slot.speakers), slot.format,
        )
    out.print(table)
    out.print(f"Locations: {', '.join(proposal.locations)}")
    if proposal.partial:
        out.print(f"[yellow]Partial result: {proposal.partial_reason}[/yellow]")


@click.command("recover")
@click.argument("source", type=click.File("r"), default="-")
@click.option("--json-output", "--json", is_flag=True)
def recover_cmd(source, json_output: bool):
    """Recover a schedule from raw agent output (FILE or stdin)."""
    settings = _load_settings()
    proposal = recover_schedule(source.read(), settings.preview_length)
    if json_output:
        click.echo(json.dumps(proposal.to_wire(), indent=2))
    else:
        render_proposal(proposal)
    if not proposal.success:
        raise SystemExit(1)
