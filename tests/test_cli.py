"""CLI tests using click's CliRunner."""

import json

import pytest
from click.testing import CliRunner

from schedule_agent.cli import main as cli_main
from schedule_agent.cli.main import main
from schedule_agent.client import AsyncScheduleAgent
from schedule_agent.collaborators import AgentClient
from schedule_agent.config import Settings
from schedule_agent.memory import MemoryScheduleRepository
from schedule_agent.models.batch import AgentReply


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    monkeypatch.setattr("schedule_agent.config.CONFIG_FILE", path)
    for name in Settings.model_fields:
        monkeypatch.delenv(f"SCHEDULE_AGENT_{name.upper()}", raising=False)
    return path


class OneBatchAgent(AgentClient):
    async def invoke(self, message, conversation_id=None, context=None):
        return AgentReply(text='[{"sessionName": "Keynote", "location": "Hall A"}]', conversation_id="c1")


def test_recover_json(tmp_path):
    source = tmp_path / "reply.txt"
    source.write_text('{"type":"Text","value":"[{\\"sessionName\\":\\"Keynote\\",\\"location\\":\\"Hall A\\"}]"}')
    result = CliRunner().invoke(main, ["recover", "--json", str(source)])
    assert result.exit_code == 0, result.output
    wire = json.loads(result.stdout)
    assert wire["totalSessions"] == 1
    assert wire["locations"] == ["Hall A"]


def test_recover_table_from_stdin():
    result = CliRunner().invoke(main, ["recover"], input='[{"sessionName":"A","location":"Room1"},{"sessionName":"B"')
    assert result.exit_code == 0, result.output
    assert "Partial result" in result.output


def test_recover_failure_exit_code():
    result = CliRunner().invoke(main, ["recover", "--json"], input="no schedule here")
    assert result.exit_code == 1
    assert json.loads(result.stdout)["success"] is False


def test_config_set_and_show(isolated_config):
    runner = CliRunner()
    result = runner.invoke(main, ["config", "set", "batch_size", "4"])
    assert result.exit_code == 0, result.output
    assert json.loads(isolated_config.read_text())["batch_size"] == 4

    runner.invoke(main, ["config", "set", "access_token", "secret"])
    shown = json.loads(runner.invoke(main, ["config", "show"]).stdout)
    assert shown["batch_size"] == 4
    assert shown["access_token"] == "***"


def test_config_set_rejects_bad_values():
    runner = CliRunner()
    assert runner.invoke(main, ["config", "set", "nope", "1"]).exit_code == 1
    assert runner.invoke(main, ["config", "set", "batch_size", "0"]).exit_code == 1


def test_run_chain(monkeypatch):
    repository = MemoryScheduleRepository(unscheduled=1)

    def fake_client():
        settings = Settings(poll_interval_s=0.01)
        return AsyncScheduleAgent(settings, agent=OneBatchAgent(), repository=repository)

    monkeypatch.setattr(cli_main, "_get_client", fake_client)
    result = CliRunner().invoke(main, ["run", "Build the schedule", "--json", "--accept"])
    assert result.exit_code == 0, result.output
    out = json.loads(result.stdout)
    assert out["outcome"] == "completed"
    assert out["totalProcessed"] == 1
    assert out["rawOrParsedPayload"]["schedule"][0]["sessionName"] == "Keynote"
    assert [s.session_name for s in repository.published] == ["Keynote"]
