"""Tests for the terraform runner."""

import os
import subprocess

import pytest

import terraform_runner
from errors import RunnerBusyError
from terraform_runner import TerraformRunner


FILES = {"main.tf": 'resource "null_resource" "x" {}\n'}


class FakeTerraform:
    """Records every spawned command and replies with scripted exit codes."""

    def __init__(self, exit_codes=None, spawn_errors=0):
        self.exit_codes = exit_codes or {}
        self.spawn_errors = spawn_errors
        self.calls = []
        self.workdirs = []

    def __call__(self, command, cwd=None, capture_output=False, text=False, timeout=None):
        if self.spawn_errors:
            self.spawn_errors -= 1
            raise FileNotFoundError("terraform not found")

        self.calls.append(command[1:])
        self.workdirs.append(cwd)
        assert os.path.exists(os.path.join(cwd, "main.tf"))

        code = self.exit_codes.get(command[1], 0)
        return subprocess.CompletedProcess(command, code, stdout=f"{command[1]} output", stderr="" if code == 0 else "boom")


@pytest.fixture
def fake_terraform(monkeypatch):
    fake = FakeTerraform()
    monkeypatch.setattr(terraform_runner.subprocess, "run", fake)
    return fake


@pytest.fixture
def runner(tmp_path):
    return TerraformRunner(terraform_bin="terraform", stage_timeout=5, spawn_retries=2, workdir_root=str(tmp_path))


def test_deploy_runs_init_plan_apply(runner, fake_terraform):
    report = runner.deploy("dev", FILES)

    assert [call[0] for call in fake_terraform.calls] == ["init", "plan", "apply"]
    assert "-auto-approve" in fake_terraform.calls[2]
    assert report.ok
    assert [(e.stage, e.status) for e in report.events] == [
        ("init", "started"), ("init", "succeeded"),
        ("plan", "started"), ("plan", "succeeded"),
        ("apply", "started"), ("apply", "succeeded"),
    ]


def test_stages_share_one_workdir_which_is_removed(runner, fake_terraform):
    runner.deploy("dev", FILES)

    assert len(set(fake_terraform.workdirs)) == 1
    assert not os.path.exists(fake_terraform.workdirs[0])


def test_destroy_plans_destruction(runner, fake_terraform):
    report = runner.destroy("dev", FILES)

    assert [call[0] for call in fake_terraform.calls] == ["init", "plan", "destroy"]
    assert "-destroy" in fake_terraform.calls[1]
    assert report.ok


def test_validate_skips_backend(runner, fake_terraform):
    report = runner.validate("dev", FILES)

    assert [call[0] for call in fake_terraform.calls] == ["init", "validate"]
    assert "-backend=false" in fake_terraform.calls[0]
    assert report.ok


def test_failed_stage_stops_sequence_without_retry(runner, fake_terraform):
    fake_terraform.exit_codes = {"plan": 1}
    events = []

    report = runner.deploy("dev", FILES, on_event=events.append)

    assert [call[0] for call in fake_terraform.calls] == ["init", "plan"]
    assert not report.ok
    assert report.events[-1].status == "failed"
    assert report.events[-1].result.stderr == "boom"
    assert events == report.events
    assert not os.path.exists(fake_terraform.workdirs[0])


def test_spawn_failures_are_retried(runner, fake_terraform):
    fake_terraform.spawn_errors = 2

    result = runner.run("init", FILES)

    assert result.ok
    assert len(fake_terraform.calls) == 1


def test_spawn_failures_give_up_after_retries(runner, fake_terraform):
    fake_terraform.spawn_errors = 3

    result = runner.run("init", FILES)

    assert not result.ok
    assert result.exit_code == -1
    assert "terraform not found" in result.stderr
    assert fake_terraform.calls == []


def test_timeout_is_terminal(runner, monkeypatch):
    def timeout(command, **kwargs):
        raise subprocess.TimeoutExpired(command, 5)

    monkeypatch.setattr(terraform_runner.subprocess, "run", timeout)
    result = runner.run("plan", FILES)

    assert not result.ok
    assert "timed out" in result.stderr


def test_single_stage_run_cleans_up(runner, fake_terraform, tmp_path):
    result = runner.run("validate", FILES)

    assert result.ok
    assert result.stdout == "validate output"
    assert not os.path.exists(fake_terraform.workdirs[0])
    assert list(tmp_path.iterdir()) == []


def test_unknown_stage_is_rejected(runner):
    with pytest.raises(ValueError):
        runner.run("refresh", FILES)


def test_file_names_must_be_plain(runner, fake_terraform):
    with pytest.raises(ValueError):
        runner.deploy("dev", {"../escape.tf": "x"})
    assert not runner.is_busy("dev")


def test_one_run_per_environment(runner, fake_terraform):
    lock = runner._acquire("prod")
    try:
        assert runner.is_busy("prod")
        with pytest.raises(RunnerBusyError, match="prod"):
            runner.deploy("prod", FILES)

        report = runner.deploy("staging", FILES)
        assert report.ok
    finally:
        lock.release()

    assert runner.deploy("prod", FILES).ok


def test_lock_is_released_after_failure(runner, fake_terraform):
    fake_terraform.exit_codes = {"init": 1}
    runner.deploy("dev", FILES)

    assert not runner.is_busy("dev")


def test_negative_spawn_retries_still_runs_once(fake_terraform, tmp_path):
    runner = TerraformRunner(terraform_bin="terraform", stage_timeout=5, spawn_retries=-3, workdir_root=str(tmp_path))

    report = runner.validate("dev", FILES)

    assert runner.spawn_retries == 0
    assert report.ok
    assert [call[0] for call in fake_terraform.calls] == ["init", "validate"]
