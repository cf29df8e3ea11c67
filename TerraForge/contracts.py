"""
Provider Contracts Module

Responsibility:
- Define per-provider Terraform metadata (local name, registry source, version,
  provider block, provider-level variables)
- Define which dependency kinds exist and which kinds must be declared before others
- Define the inbound paths each service opens in its security boundary

Contracts define WHAT a generated project must contain, not how it is rendered.
"""

from typing import Dict, List


DEPENDENCY_KINDS = ("resource-group", "network", "subnet", "security-boundary")

INTERNET_CIDR = "0.0.0.0/0"
NETWORK_CIDR = "10.0.0.0/16"


# AWS Provider Contract
AWS_CONTRACT = {
    "provider_id": "aws",
    "local_name": "aws",
    "source": "hashicorp/aws",
    "version": "~> 5.0",
    # Provider block attributes; strings starting with "var." are variable references
    "provider_block": {
        "region": "var.region",
    },
    "variables": [
        {"name": "region", "description": "AWS region to deploy into", "default": "us-east-1"},
    ],
    # Dependency kind -> kinds that must be declared earlier
    "prerequisites": {
        "network": [],
        "subnet": ["network"],
        "security-boundary": ["network"],
    },
}

# GCP Provider Contract
GCP_CONTRACT = {
    "provider_id": "gcp",
    "local_name": "google",
    "source": "hashicorp/google",
    "version": "~> 5.0",
    "provider_block": {
        "project": "var.project_id",
        "region": "var.region",
    },
    "variables": [
        {"name": "project_id", "description": "GCP project to deploy into", "default": None},
        {"name": "region", "description": "GCP region to deploy into", "default": "us-central1"},
    ],
    "prerequisites": {
        "network": [],
        "subnet": ["network"],
        "security-boundary": ["network"],
    },
}

# Azure Provider Contract
AZURE_CONTRACT = {
    "provider_id": "azure",
    "local_name": "azurerm",
    "source": "hashicorp/azurerm",
    "version": "~> 3.0",
    "provider_block": {
        "features": {},  # required empty block
    },
    "variables": [
        {"name": "location", "description": "Azure region to deploy into", "default": "East US"},
    ],
    "prerequisites": {
        "resource-group": [],
        "network": ["resource-group"],
        "subnet": ["network"],
        "security-boundary": ["resource-group"],
    },
}


# Contract lookup
PROVIDER_CONTRACTS = {
    "aws": AWS_CONTRACT,
    "gcp": GCP_CONTRACT,
    "azure": AZURE_CONTRACT,
}


def get_provider_contract(provider_id: str):
    """Retrieve provider contract by provider id."""
    return PROVIDER_CONTRACTS.get(provider_id)


# Native port per database engine
ENGINE_PORTS = {
    "mysql": 3306,
    "mariadb": 3306,
    "postgres": 5432,
    "oracle-ee": 1521,
    "sqlserver-ex": 1433,
}

# Inbound paths per service.
# "ports": fixed list, or "engine" to derive the single port from the engine field.
# "source": "internet" (0.0.0.0/0) or "internal" (the generated network block).
INGRESS_CONTRACTS = {
    ("aws", "ec2"): {"ports": [22, 80, 443], "source": "internet"},
    ("aws", "rds"): {"ports": "engine", "source": "internal"},
    ("aws", "alb"): {"ports": [80, 443], "source": "internet"},
    ("gcp", "compute_instance"): {"ports": [22, 80, 443], "source": "internet"},
    ("azure", "virtual_machine"): {"ports": [22, 80, 443], "source": "internet"},
}

_PORT_NAMES = {22: "SSH", 80: "HTTP", 443: "HTTPS", 3306: "MySQL", 5432: "PostgreSQL", 1521: "Oracle", 1433: "MSSQL"}


def ingress_rules(provider_id: str, service_id: str, values: dict) -> List[Dict]:
    """
    Resolve the inbound rules a service's security boundary must permit.

    Returns a list of {"name", "port", "cidr"} dicts; empty when the service
    has no inbound contract.
    """
    contract = INGRESS_CONTRACTS.get((provider_id, service_id))
    if not contract:
        return []

    if contract["ports"] == "engine":
        ports = [ENGINE_PORTS.get(values.get("engine"), 3306)]
    else:
        ports = list(contract["ports"])

    cidr = INTERNET_CIDR if contract["source"] == "internet" else NETWORK_CIDR

    return [
        {"name": _PORT_NAMES.get(port, f"port-{port}"), "port": port, "cidr": cidr}
        for port in ports
    ]
