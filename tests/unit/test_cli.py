"""Tests for the stackplan command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from stackplan.cli import cli

_SITE = {
    "name": "site",
    "resources": [
        {"id": "Cdn", "kind": "Distribution", "properties": {"defaultBehavior": {"origin": {"Ref": "Site"}}}},
        {"id": "Site", "kind": "Bucket", "properties": {"bucketName": "site"}},
    ],
    "outputs": [{"name": "CdnDomain", "value": {"GetAtt": ["Cdn", "domainName"]}}],
}


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch, stackplan_env: None) -> None:
    # Keep the test structlog configuration in place.
    monkeypatch.setattr("stackplan.cli.main.setup_logging", lambda *args, **kwargs: None)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def site_file(tmp_path: Path) -> Path:
    path = tmp_path / "site.json"
    path.write_text(json.dumps(_SITE), encoding="utf-8")
    return path


class TestPlanCommand:
    def test_builtin_monorepo_text(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["plan"])

        assert result.exit_code == 0, result.output
        assert "Plan for mono-repo" in result.output
        assert "+ Bucket" in result.output
        assert "17 to create, 0 to update, 0 to delete." in result.output
        assert "UiBucketDomainOutput = ${UiBucket.websiteDomainName}" in result.output

    def test_topology_file_json(self, runner: CliRunner, site_file: Path) -> None:
        result = runner.invoke(cli, ["plan", "--topology", str(site_file), "--format", "json"])

        assert result.exit_code == 0, result.output
        body = json.loads(result.output)
        assert body["topology"] == "site"
        assert [op["nodeId"] for op in body["operations"]] == ["Site", "Cdn"]
        assert body["operations"][1]["resolvedProperties"] == {"defaultBehavior": {"origin": "${Site.bucketName}"}}
        assert body["outputs"] == {"CdnDomain": "${Cdn.domainName}"}

    def test_state_turns_creates_into_updates(self, runner: CliRunner, site_file: Path, tmp_path: Path) -> None:
        state = tmp_path / "state.json"
        state.write_text(
            json.dumps({"resources": {"Site": {"kind": "Bucket", "outputs": {"bucketName": "site"}}}}),
            encoding="utf-8",
        )
        result = runner.invoke(
            cli, ["plan", "--topology", str(site_file), "--state", str(state), "--format", "json"]
        )

        assert result.exit_code == 0, result.output
        body = json.loads(result.output)
        assert [op["operation"] for op in body["operations"]] == ["update", "create"]
        assert body["operations"][1]["resolvedProperties"] == {"defaultBehavior": {"origin": "${Site.bucketName}"}}

    def test_cycle_exits_with_error(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "cycle.json"
        path.write_text(
            json.dumps(
                {
                    "resources": [
                        {"id": "A", "kind": "Bucket", "properties": {"x": {"Ref": "B"}}},
                        {"id": "B", "kind": "Bucket", "properties": {"x": {"Ref": "A"}}},
                    ]
                }
            ),
            encoding="utf-8",
        )
        result = runner.invoke(cli, ["plan", "--topology", str(path)])

        assert result.exit_code == 1
        assert "Dependency cycle: A -> B -> A" in result.output

    def test_missing_config_exits_with_error(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("STACKPLAN_DOMAIN_NAME")
        result = runner.invoke(cli, ["plan"])

        assert result.exit_code == 1
        assert "domain_name" in result.output

    def test_invalid_config_exits_with_error(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STACKPLAN_LOG_LEVEL", "loud")
        result = runner.invoke(cli, ["plan"])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestGraphCommand:
    def test_text_groups(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["graph"])

        assert result.exit_code == 0, result.output
        lines = result.output.strip().splitlines()
        assert len(lines) == 3
        assert lines[0].startswith("[0] UiBucket, HostedZone")
        assert lines[2] == "[2] SiteAliasRecord, DemoGetMethod, FoobarGetMethod"

    def test_json(self, runner: CliRunner, site_file: Path) -> None:
        result = runner.invoke(cli, ["graph", "--topology", str(site_file), "--format", "json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"topology": "site", "order": ["Site", "Cdn"], "groups": [["Site"], ["Cdn"]]}


class TestDeployCommand:
    def test_simulated_deploy_writes_state(self, runner: CliRunner, tmp_path: Path) -> None:
        state = tmp_path / "state.json"
        result = runner.invoke(cli, ["deploy", "--state", str(state), "--format", "json"])

        assert result.exit_code == 0, result.output
        body = json.loads(result.output)
        assert body["status"] == "done"
        assert body["outputs"]["UiBucketDomainOutput"] == "monorepo-ui.s3-website-eu-central-1.amazonaws.com"
        saved = json.loads(state.read_text(encoding="utf-8"))
        assert len(saved["resources"]) == 17

        second = runner.invoke(cli, ["plan", "--state", str(state)])
        assert "0 to create, 17 to update, 0 to delete." in second.output

    def test_failure_exits_2_and_lists_skipped(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["deploy", "--fail-on", "RestApi"])

        assert result.exit_code == 2
        assert "Deployment failed" in result.output
        assert "simulated failure for RestApi 'RestApi'" in result.output
        assert "ApiKey  (dependency 'RestApi' failed)" in result.output
        assert "FoobarGetMethod  (dependency 'RestApi' failed)" in result.output
