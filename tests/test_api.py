"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

import api
from errors import RunnerBusyError
from terraform_runner import RunReport, RunResult, StageEvent


@pytest.fixture
def client():
    with TestClient(api.app) as test_client:
        yield test_client


class StubRunner:
    def __init__(self, busy=False):
        self.busy = busy
        self.calls = []

    def _report(self, operation, environment, files):
        if self.busy:
            raise RunnerBusyError(environment)
        self.calls.append((operation, environment, files))
        result = RunResult(ok=True, stdout="ok", exit_code=0, stage="init")
        return RunReport(environment=environment, operation=operation, events=[
            StageEvent("init", "started"),
            StageEvent("init", "succeeded", result),
            StageEvent("validate", "started"),
            StageEvent("validate", "succeeded", RunResult(ok=True, stage="validate")),
        ])

    def validate(self, environment, files):
        return self._report("validate", environment, files)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_list_providers(client):
    providers = client.get("/providers").json()["providers"]
    assert [p["id"] for p in providers] == ["aws", "gcp", "azure"]
    assert providers[0]["service_count"] == 12


def test_list_services(client):
    body = client.get("/providers/gcp/services").json()
    assert body["provider"] == "gcp"
    assert body["services"][0]["id"] == "compute_instance"


def test_service_detail(client):
    body = client.get("/providers/aws/services/ec2").json()
    assert body["dependencies"] == ["network", "subnet", "security-boundary"]


def test_unknown_provider_is_404(client):
    response = client.get("/providers/oracle/services")
    assert response.status_code == 404
    assert response.json()["detail"] == "Unknown provider 'oracle'"


def test_unknown_service_is_404(client):
    assert client.get("/providers/aws/services/quantum").status_code == 404
    response = client.post("/generate", json={"provider": "aws", "service": "quantum", "values": {}})
    assert response.status_code == 404


def test_generate(client):
    response = client.post("/generate", json={
        "provider": "aws",
        "service": "ec2",
        "values": {"instance_name": "web1"},
    })

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "template"
    assert list(body["files"])[:4] == ["versions.tf", "providers.tf", "variables.tf", "main.tf"]
    assert 'resource "aws_instance" "web1_main"' in body["files"]["main.tf"]


def test_generate_validation_errors_are_field_addressable(client):
    response = client.post("/generate", json={
        "provider": "aws",
        "service": "rds",
        "values": {"db_identifier": "orders", "engine": "db2"},
    })

    assert response.status_code == 422
    errors = response.json()["detail"]["errors"]
    assert {e["field"]: e["code"] for e in errors} == {
        "engine": "InvalidEnumValue",
        "password": "MissingRequiredField",
    }


def test_terraform_validate(client, monkeypatch):
    stub = StubRunner()
    monkeypatch.setattr(api, "runner", stub)

    response = client.post("/terraform/validate", json={"environment": "dev", "files": {"main.tf": ""}})

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert [(e["stage"], e["status"]) for e in body["events"]] == [
        ("init", "started"), ("init", "succeeded"), ("validate", "started"), ("validate", "succeeded"),
    ]
    assert stub.calls == [("validate", "dev", {"main.tf": ""})]


def test_terraform_busy_environment_is_409(client, monkeypatch):
    monkeypatch.setattr(api, "runner", StubRunner(busy=True))
    response = client.post("/terraform/validate", json={"environment": "prod", "files": {}})
    assert response.status_code == 409


def test_terraform_unknown_operation_is_404(client):
    response = client.post("/terraform/refresh", json={"environment": "dev", "files": {}})
    assert response.status_code == 404
