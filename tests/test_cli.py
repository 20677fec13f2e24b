from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import httpx
import pytest
import typer
from typer.testing import CliRunner

from cli.app import app
from cli.client import ApiClient
from cli.config import load_config


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.submitted: List[Path] = []
        self.export_formats: List[str] = []
        self.users_payload: List[Dict[str, Any]] = [
            {"id": 1, "name": "A", "email": "a@x"},
            {"id": 2, "name": "B", "email": "b@x"},
        ]
        self.closed = False

    def submit(self, path: Path) -> str:
        self.submitted.append(path)
        return "Data submission successful"

    def export_users(self, export_format: str) -> httpx.Response:
        self.export_formats.append(export_format)
        if export_format == "csv":
            return httpx.Response(200, text="ID,Name,Email\n1,A,a@x\n")
        return httpx.Response(200, json=self.users_payload)

    def hello(self) -> Dict[str, Any]:
        return {
            "message": "Hello, World!",
            "items": [{"key": "key1", "value": "value1"}],
        }

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stub(monkeypatch) -> StubClient:
    stub = StubClient(config=None)

    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return stub


def test_submit_command(runner: CliRunner, stub: StubClient, tmp_path) -> None:
    path = tmp_path / "submission.json"
    path.write_text(json.dumps({"timestamp": "2024-01-01T00:00:00Z"}))

    result = runner.invoke(app, ["--base-url", "http://ingest:9000/", "submit", str(path)])

    assert result.exit_code == 0
    assert "Data submission successful" in result.stdout
    assert stub.submitted == [path]
    assert stub.config.base_url == "http://ingest:9000"
    assert stub.closed is True


def test_users_command_renders_json(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["users"])

    assert result.exit_code == 0
    assert "1: A <a@x>" in result.stdout
    assert stub.export_formats == ["json"]


def test_users_command_writes_csv_to_file(runner: CliRunner, stub: StubClient, tmp_path) -> None:
    output = tmp_path / "users.csv"

    result = runner.invoke(app, ["users", "--format", "csv", "--output", str(output)])

    assert result.exit_code == 0
    assert output.read_text().splitlines() == ["ID,Name,Email", "1,A,a@x"]


def test_hello_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["hello"])

    assert result.exit_code == 0
    assert "Hello, World!" in result.stdout
    assert "key1: value1" in result.stdout


def test_client_reports_server_message_on_rejection(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/submit-iot-data"
        return httpx.Response(400, text="At least one device is required")

    client = ApiClient(load_config(base_url="http://test"))
    client._client = httpx.Client(base_url="http://test", transport=httpx.MockTransport(handler))
    path = tmp_path / "submission.json"
    path.write_text("{}")

    with pytest.raises(typer.Exit) as excinfo:
        client.submit(path)

    assert excinfo.value.exit_code == 1
    client.close()


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://env-host:8000/")
    monkeypatch.setenv("CLI_TIMEOUT", "-5")

    config = load_config()

    assert config.base_url == "http://env-host:8000"
    assert config.timeout == 30.0
