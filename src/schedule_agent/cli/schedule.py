"""CLI: schedule-agent events, schedule-agent run"""

import json
from typing import Optional

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from schedule_agent.cli.recover import render_proposal
from schedule_agent.models.schedule import ScheduleProposal

console = Console()


def _get_client():
    from schedule_agent.cli.main import _get_client
    return _get_client()


def _run(coro):
    from schedule_agent.cli.main import _run
    return _run(coro)


@click.command("events")
@click.option("--json-output", "--json", is_flag=True)
def events_cmd(json_output: bool):
    """List conference events."""

    async def _list():
        client = _get_client()
        try:
            events = await client.list_events()
        finally:
            await client.close()
        if json_output:
            click.echo(json.dumps([e.model_dump(mode="json") for e in events], indent=2))
            return
        table = Table(title=f"Events ({len(events)})")
        table.add_column("ID", style="bold")
        table.add_column("Event")
        for event in events:
            table.add_row(event.id, event.label)
        console.print(table)

    _run(_list())


@click.command("run")
@click.argument("message")
@click.option("-e", "--event", "event_id", default=None, help="Conference event id")
@click.option("-b", "--batch-size", type=int, default=None)
@click.option("-c", "--conversation", "conversation_id", default=None, help="Continue an agent conversation")
@click.option("--accept", is_flag=True, help="Accept the drafts when the chain completes")
@click.option("--json-output", "--json", is_flag=True)
def run_cmd(message: str, event_id: Optional[str], batch_size: Optional[int],
            conversation_id: Optional[str], accept: bool, json_output: bool):
    """Run a scheduling chain and wait for it to finish."""

    async def _chain():
        client = _get_client()
        try:
            started = await client.start_chain(
                message, prior_conversation_id=conversation_id,
                batch_size=batch_size, event_id=event_id,
            )
            sid = started["sessionId"]
            if not json_output:
                console.print(f"[dim]Session: {sid}[/dim]")
            with Progress(
                TextColumn("{task.description}"), BarColumn(), TextColumn("{task.percentage:>3.0f}%"),
                console=console, transient=True, disable=json_output,
            ) as bar:
                task = bar.add_task("Scheduling...", total=100)

                def on_progress(progress, report):
                    bar.update(task, completed=progress,
                               description=f"Scheduling ({report.total_processed} done)")

                outcome = await client.wait(sid, on_progress=on_progress)
            report = outcome.report
            if json_output:
                click.echo(json.dumps({
                    "sessionId": sid,
                    "outcome": outcome.reason,
                    **(report.to_wire() if report else {}),
                }, indent=2, default=str))
            elif outcome.succeeded:
                render_proposal(ScheduleProposal.model_validate(report.payload or {}))
            else:
                detail = report.error_detail if report else None
                console.print(f"[red]Chain {outcome.reason}: {detail or 'no further detail'}[/red]")
            if outcome.succeeded and accept:
                await client.accept_proposal(sid)
                if not json_output:
                    console.print("[green]Schedule accepted.[/green]")
            if not outcome.succeeded:
                raise SystemExit(1)
        finally:
            await client.close()

    _run(_chain())
