"""
Settings — ~/.schedule-agent/config.json overridden by SCHEDULE_AGENT_* env vars.
"""

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field

from schedule_agent.models.batch import DEFAULT_BATCH_SIZE, MAX_CHAIN_DEPTH
from schedule_agent.transport.http import DEFAULT_BASE_URL

CONFIG_FILE = Path.home() / ".schedule-agent" / "config.json"
ENV_PREFIX = "SCHEDULE_AGENT_"


class Settings(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    access_token: Optional[str] = None
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1)
    max_chain_depth: int = Field(default=MAX_CHAIN_DEPTH, ge=1)
    poll_interval_s: float = Field(default=2.0, gt=0)
    poll_timeout_s: float = Field(default=600.0, gt=0)
    multipart_wait_s: float = Field(default=30.0, ge=0)
    stable_polls: int = Field(default=2, ge=1)
    preview_length: int = Field(default=500, ge=0)
    request_timeout_s: float = Field(default=30.0, gt=0)


def _load_file(path: Path) -> dict[str, Any]:
    try:
        return json.loads(path.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def load_settings(path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """File values first, then SCHEDULE_AGENT_<FIELD> environment overrides.

    Raises pydantic.ValidationError on out-of-range values.
    """
    environ = os.environ if environ is None else environ
    values = _load_file(path or CONFIG_FILE)
    for name in Settings.model_fields:
        env_value = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if env_value is not None and env_value != "":
            values[name] = env_value
    return Settings.model_validate(values)


def save_settings(settings: Settings, path: Optional[Path] = None) -> Path:
    path = path or CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings.model_dump(exclude_none=True), indent=2))
    return path
