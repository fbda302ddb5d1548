"""CLI: schedule-agent config show|set"""

import json

import click
from pydantic import ValidationError
from rich.console import Console

from schedule_agent.config import Settings, load_settings, save_settings

console = Console()


def _load_settings() -> Settings:
    from schedule_agent.cli.main import _load_settings
    return _load_settings()


@click.group()
def config():
    """Saved settings."""


@config.command("show")
def config_show():
    """Print the effective settings."""
    settings = _load_settings()
    shown = settings.model_dump()
    if shown.get("access_token"):
        shown["access_token"] = "***"
    click.echo(json.dumps(shown, indent=2))


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str):
    """Set one setting, e.g. `schedule-agent config set batch_size 5`."""
    if key not in Settings.model_fields:
        console.print(f"[red]Unknown setting {key!r}. Known: {', '.join(Settings.model_fields)}[/red]")
        raise SystemExit(1)
    # File values only, so environment overrides are not persisted
    current = load_settings(environ={}).model_dump()
    current[key] = value
    try:
        settings = Settings.model_validate(current)
    except ValidationError as e:
        console.print(f"[red]Invalid value for {key}: {e.errors()[0]['msg']}[/red]")
        raise SystemExit(1)
    path = save_settings(settings)
    console.print(f"[green]{key} saved to {path}[/green]")
