"""
schedule-agent CLI — `schedule-agent` command.

Commands:
  schedule-agent recover FILE        Recover a schedule from raw agent output
  schedule-agent events              List conference events
  schedule-agent run MESSAGE         Run a scheduling chain and wait for it
  schedule-agent config show|set     Inspect or change saved settings
"""

import asyncio
import logging

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires click and rich: pip install schedule-agent")

from schedule_agent import __version__
from schedule_agent.client import AsyncScheduleAgent
from schedule_agent.config import Settings, load_settings

console = Console()


def _load_settings() -> Settings:
    try:
        return load_settings()
    except ValueError as e:
        console.print(f"[red]Invalid settings: {e}[/red]")
        raise SystemExit(1)


def _get_client() -> AsyncScheduleAgent:
    return AsyncScheduleAgent(_load_settings())


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option(__version__)
@click.option("-v", "--verbose", is_flag=True, help="Log chain and recovery details")
def main(verbose: bool):
    """schedule-agent CLI — build conference schedules with an AI agent."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


# Register subcommands from separate modules
from schedule_agent.cli.recover import recover_cmd
from schedule_agent.cli.schedule import events_cmd, run_cmd
from schedule_agent.cli.config import config

main.add_command(recover_cmd)
main.add_command(events_cmd)
main.add_command(run_cmd)
main.add_command(config)


if __name__ == "__main__":
    main()
