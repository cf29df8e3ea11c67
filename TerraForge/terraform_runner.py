"""
Provisioning Runner Module

Responsibility:
- Run terraform stages (init, plan, apply, destroy, validate) over generated files
- Sequence stages for deploy / destroy / validate and report ordered stage events
- Allow at most one run per environment at a time
- Isolate every run in its own temporary working directory, removed afterwards

Process-spawn failures are retried; a non-zero terraform exit is terminal for
the stage and stops the sequence.
"""

import logging
import os
import subprocess
import tempfile
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from config import RUNNER_CONFIG
from errors import RunnerBusyError


logger = logging.getLogger(__name__)


STAGES = ("init", "plan", "apply", "destroy", "validate")

STAGE_ARGS = {
    "init": ["init", "-input=false", "-no-color"],
    "plan": ["plan", "-input=false", "-no-color"],
    "apply": ["apply", "-input=false", "-auto-approve", "-no-color"],
    "destroy": ["destroy", "-input=false", "-auto-approve", "-no-color"],
    "validate": ["validate", "-no-color"],
}

# Operation -> ordered stages
SEQUENCES = {
    "deploy": ["init", "plan", "apply"],
    "destroy": ["init", "plan", "destroy"],
    "validate": ["init", "validate"],
}


@dataclass
class RunResult:
    ok: bool
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    stage: str = ""


@dataclass
class StageEvent:
    """One lifecycle step of a run: status is "started", "succeeded" or "failed"."""
    stage: str
    status: str
    result: Optional[RunResult] = None


@dataclass
class RunReport:
    environment: str
    operation: str
    events: List[StageEvent] = field(default_factory=list)

    @property
    def results(self) -> List[RunResult]:
        return [e.result for e in self.events if e.result is not None]

    @property
    def ok(self) -> bool:
        results = self.results
        return bool(results) and all(r.ok for r in results) and len(results) == len(SEQUENCES[self.operation])


class TerraformRunner:
    """
    Thin wrapper around the terraform binary.

    Environment locks live on the instance; share one runner per process.
    """

    def __init__(self, terraform_bin: Optional[str] = None, stage_timeout: Optional[int] = None,
                 spawn_retries: Optional[int] = None, workdir_root: Optional[str] = None):
        self.terraform_bin = terraform_bin or RUNNER_CONFIG["terraform_bin"]
        self.stage_timeout = stage_timeout or RUNNER_CONFIG["stage_timeout"]
        self.spawn_retries = max(0, RUNNER_CONFIG["spawn_retries"] if spawn_retries is None else spawn_retries)
        self.workdir_root = workdir_root or RUNNER_CONFIG["workdir_root"]
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    # Single stage

    def run(self, stage: str, files: Dict[str, str], workdir: Optional[str] = None) -> RunResult:
        """
        Run one terraform stage over `files`.

        Without `workdir` the stage runs in a fresh temporary directory that is
        removed afterwards; sequences pass their shared directory instead.
        """
        if stage not in STAGES:
            raise ValueError(f"Unknown terraform stage '{stage}'")

        if workdir is None:
            with tempfile.TemporaryDirectory(prefix="terraforge-", dir=self.workdir_root) as tmp:
                return self.run(stage, files, workdir=tmp)

        write_files(workdir, files)
        return self._execute(stage, workdir)

    def _execute(self, stage: str, workdir: str, extra_args: Optional[List[str]] = None) -> RunResult:
        command = [self.terraform_bin] + STAGE_ARGS[stage] + (extra_args or [])
        attempts = self.spawn_retries + 1

        for attempt in range(1, attempts + 1):
            try:
                completed = subprocess.run(
                    command,
                    cwd=workdir,
                    capture_output=True,
                    text=True,
                    timeout=self.stage_timeout,
                )
            except subprocess.TimeoutExpired:
                logger.warning("terraform %s timed out after %ss", stage, self.stage_timeout)
                return RunResult(ok=False, stderr=f"terraform {stage} timed out after {self.stage_timeout}s",
                                 exit_code=-1, stage=stage)
            except OSError as e:
                logger.warning("Could not start terraform %s (attempt %d/%d): %s", stage, attempt, attempts, e)
                if attempt == attempts:
                    return RunResult(ok=False, stderr=str(e), exit_code=-1, stage=stage)
                continue

            return RunResult(
                ok=completed.returncode == 0,
                stdout=completed.stdout,
                stderr=completed.stderr,
                exit_code=completed.returncode,
                stage=stage,
            )

    # Sequences

    def deploy(self, environment: str, files: Dict[str, str],
               on_event: Optional[Callable[[StageEvent], None]] = None) -> RunReport:
        return self._run_sequence("deploy", environment, files, on_event)

    def destroy(self, environment: str, files: Dict[str, str],
                on_event: Optional[Callable[[StageEvent], None]] = None) -> RunReport:
        return self._run_sequence("destroy", environment, files, on_event)

    def validate(self, environment: str, files: Dict[str, str],
                 on_event: Optional[Callable[[StageEvent], None]] = None) -> RunReport:
        return self._run_sequence("validate", environment, files, on_event)

    def _run_sequence(self, operation: str, environment: str, files: Dict[str, str],
                      on_event: Optional[Callable[[StageEvent], None]]) -> RunReport:
        report = RunReport(environment=environment, operation=operation)

        def emit(event: StageEvent):
            report.events.append(event)
            if on_event:
                on_event(event)

        lock = self._acquire(environment)
        try:
            with tempfile.TemporaryDirectory(prefix="terraforge-", dir=self.workdir_root) as workdir:
                write_files(workdir, files)

                for stage in SEQUENCES[operation]:
                    emit(StageEvent(stage=stage, status="started"))

                    # A destroy run plans the destruction, not a change set
                    extra = ["-destroy"] if operation == "destroy" and stage == "plan" else None
                    if stage == "init" and operation == "validate":
                        extra = ["-backend=false"]

                    result = self._execute(stage, workdir, extra)
                    emit(StageEvent(stage=stage, status="succeeded" if result.ok else "failed", result=result))
                    logger.info("%s %s: terraform %s exited %d", operation, environment, stage, result.exit_code)

                    if not result.ok:
                        break
        finally:
            lock.release()

        return report

    def _acquire(self, environment: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.setdefault(environment, threading.Lock())
        if not lock.acquire(blocking=False):
            raise RunnerBusyError(environment)
        return lock

    def is_busy(self, environment: str) -> bool:
        lock = self._locks.get(environment)
        return bool(lock and lock.locked())


def write_files(workdir: str, files: Dict[str, str]):
    for filename, content in files.items():
        name = os.path.basename(filename)
        if not name or name != filename:
            raise ValueError(f"Invalid file name '{filename}'")
        with open(os.path.join(workdir, name), "w", encoding="utf-8") as handle:
            handle.write(content)
