import json
from pathlib import Path

from typer.testing import CliRunner

from release_depgraph.cli import app

runner = CliRunner()

DEMO_TIKI = Path(__file__).resolve().parent.parent / "examples" / "demo" / ".tiki"


def test_cli_releases_json_order_and_default():
    r = runner.invoke(app, ["releases", "--tiki-path", str(DEMO_TIKI), "--format", "json"])
    assert r.exit_code == 0, r.output
    payload = json.loads(r.stdout)
    assert payload["default"] == "v1.0"
    assert [x["version"] for x in payload["releases"]] == ["v1.0", "v2.0", "v0.9", "v0.1"]
    assert payload["releases"][0]["issues"] == [1, 2, 3, 4, 5]


def test_cli_releases_text():
    r = runner.invoke(app, ["releases", "--tiki-path", str(DEMO_TIKI)])
    assert r.exit_code == 0, r.output
    assert "v1.0" in r.output
    assert "not_planned" in r.output


def test_cli_releases_empty(tmp_path: Path):
    r = runner.invoke(app, ["releases", "--tiki-path", str(tmp_path)])
    assert r.exit_code == 0, r.output
    assert "No releases" in r.output


def test_cli_releases_env_tiki_path(monkeypatch):
    monkeypatch.setenv("DEPGRAPH_TIKI_PATH", str(DEMO_TIKI))
    r = runner.invoke(app, ["releases", "--format", "json"])
    assert r.exit_code == 0, r.output
    assert json.loads(r.stdout)["default"] == "v1.0"


def test_cli_releases_bad_env(monkeypatch):
    monkeypatch.setenv("DEPGRAPH_FETCH_WORKERS", "0")
    r = runner.invoke(app, ["releases", "--tiki-path", str(DEMO_TIKI)])
    assert r.exit_code == 2
    assert "E_CONFIG" in r.output
