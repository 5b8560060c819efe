"""Tests for the conveyor command line."""

import json
from pathlib import Path

import pytest

from conveyor.cli.main import build_parser, main

PIPELINE_YAML = """
name: cli-test
stages:
  - name: Build
    program: mkdir -p dist && echo "$CONVEYOR_REVISION" > dist/index.html
    output: {name: Site, base_directory: dist}
  - name: Publish
    input: Site
    program: test -f index.html
"""


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_USER", "acme")
    monkeypatch.setenv("GITHUB_REPO", "storefront")
    monkeypatch.setenv("GITHUB_TOKEN_SECRET", "github-token")
    monkeypatch.delenv("CONVEYOR_ENVIRONMENT", raising=False)
    monkeypatch.delenv("IS_LOCALSTACK", raising=False)


@pytest.fixture
def pipeline_file(tmp_path: Path) -> Path:
    path = tmp_path / "pipeline.yaml"
    path.write_text(PIPELINE_YAML)
    return path


def _exit_code(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return int(exc_info.value.code or 0)


class TestParser:
    def test_run_arguments(self) -> None:
        args = build_parser().parse_args(["run", "--revision", "abc", "--dry-run-notify"])

        assert args.command == "run"
        assert args.revision == "abc"
        assert args.ref == "refs/tags/manual"
        assert args.dry_run_notify is True
        assert args.keep_artifacts is False

    def test_decide_requires_watch(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["decide", "--revision", "abc"])

    def test_no_command(self) -> None:
        assert _exit_code([]) == 1


class TestRunCommand:
    def test_successful_run(
        self, env: None, pipeline_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        argv = ["run", "--revision", "abc123", "--definition", str(pipeline_file), "--repo", str(tmp_path)]
        code = _exit_code([*argv, "--dry-run-notify"])

        summary = json.loads(capsys.readouterr().out)
        assert code == 0
        assert summary["status"] == "SUCCEEDED"
        assert [r["stage"] for r in summary["results"]] == ["Build", "Publish"]
        assert summary["invalidation_request_id"] == "inv-1"

    def test_failed_run(self, env: None, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = tmp_path / "failing.yaml"
        path.write_text("name: failing\nstages:\n  - name: Build\n    program: exit 4\n")

        code = _exit_code(["run", "--revision", "abc123", "--definition", str(path)])

        summary = json.loads(capsys.readouterr().out)
        assert code == 1
        assert summary["status"] == "FAILED"
        assert summary["first_failure"] == "Build"
        assert summary["results"][0]["exit_code"] == 4

    def test_missing_settings(self, monkeypatch: pytest.MonkeyPatch, pipeline_file: Path) -> None:
        monkeypatch.delenv("GITHUB_USER", raising=False)
        monkeypatch.delenv("GITHUB_REPO", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN_SECRET", raising=False)

        assert _exit_code(["run", "--revision", "abc", "--definition", str(pipeline_file)]) == 2

    def test_rejected_ref(self, env: None, pipeline_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = _exit_code(["run", "--revision", "abc", "--ref", "refs/heads/main", "--definition", str(pipeline_file)])

        assert code == 2
        assert "refs/heads/main" in capsys.readouterr().err


class TestValidateCommand:
    def test_valid(self, pipeline_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert _exit_code(["validate", str(pipeline_file)]) == 0
        assert "cli-test" in capsys.readouterr().out

    def test_invalid(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("name: bad\nstages:\n  - name: Deploy\n    program: \"true\"\n    input: Missing\n")

        assert _exit_code(["validate", str(path)]) == 2
        assert "never produced" in capsys.readouterr().err


class TestTriggerConfigCommand:
    def test_local(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _exit_code(["trigger-config", "--environment", "localstack"]) == 0
        assert json.loads(capsys.readouterr().out) == {
            "environment": "local",
            "mode": "POLL",
            "secret_resolution": "PLAINTEXT",
        }

    def test_default_from_environment(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.delenv("CONVEYOR_ENVIRONMENT", raising=False)
        monkeypatch.delenv("IS_LOCALSTACK", raising=False)

        assert _exit_code(["trigger-config"]) == 0
        assert json.loads(capsys.readouterr().out)["mode"] == "WEBHOOK"

    def test_unknown(self) -> None:
        assert _exit_code(["trigger-config", "--environment", "staging"]) == 2


class TestDecideCommand:
    def test_unavailable_history_does_not_skip(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = _exit_code(["decide", "--revision", "abc", "--repo", str(tmp_path), "--watch", "package.json"])

        assert code == 0
        decision = json.loads(capsys.readouterr().out)
        assert decision["skip"] is False
        assert decision["basis"] == "NO_PRIOR_REVISION"
