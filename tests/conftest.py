"""Shared fixtures for TerraForge tests."""

import re

import pytest

from resource_db import list_providers, list_services


# Candidate values tried in order until one satisfies a field's pattern
_STRING_CANDIDATES = ["demo1", "10", "10.0.0.0/16", "600s"]


def sample_values(service, include_optional=False):
    """
    Minimal valid values for a service: every required field without a default.

    With include_optional, optional fields are set to their enabling values too,
    so every conditional sub-resource is generated.
    """
    values = {}
    for spec in service.fields:
        if spec.required and spec.default is not None:
            continue
        if not spec.required and not include_optional:
            continue

        if spec.kind == "boolean":
            values[spec.name] = True
        elif spec.kind == "enum":
            values[spec.name] = "Enabled" if "Enabled" in spec.allowed_values else spec.allowed_values[0]
        else:
            values[spec.name] = next(
                c for c in _STRING_CANDIDATES if not spec.pattern or re.fullmatch(spec.pattern, c)
            )
    return values


def all_services():
    return [(provider_id, service) for provider_id in list_providers() for service in list_services(provider_id)]


def service_ids():
    return [f"{provider_id}/{service.id}" for provider_id, service in all_services()]


@pytest.fixture
def ec2_values():
    return {"instance_name": "web1"}


@pytest.fixture
def s3_values():
    return {
        "bucket_name": "my-bucket",
        "versioning": "Enabled",
        "public_access_block": "Block all public access",
    }


@pytest.fixture
def rds_values():
    return {"db_identifier": "orders", "engine": "postgres", "password": "s3cret-Passw0rd"}
