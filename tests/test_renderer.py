"""Tests for HCL serialization."""

import re

import hcl2
import pytest

from conftest import all_services, sample_values, service_ids
from dependency_resolver import build_graph
from hcl_renderer import quote, render_block, render_value, serialize_graph
from models import (
    Block,
    Interpolation,
    OutputSpec,
    Reference,
    ResourceGraph,
    ResourceSpec,
    VariableRef,
    VariableSpec,
)
from resource_db import get_service
from validator import validate_fields


def serialize(provider_id, service_id, values):
    service = get_service(provider_id, service_id)
    validated, errors = validate_fields(service, values)
    assert errors == []
    return serialize_graph(build_graph(provider_id, service, validated))


# ============================================================================
# Values
# ============================================================================

def test_strings_are_quoted_and_escaped():
    assert render_value("plain") == '"plain"'
    assert render_value('say "hi"') == '"say \\"hi\\""'
    assert render_value("back\\slash") == '"back\\\\slash"'
    assert render_value("two\nlines") == '"two\\nlines"'
    assert render_value("${not_a_ref}") == '"$${not_a_ref}"'
    assert render_value("%{ if x }") == '"%%{ if x }"'


def test_scalars_are_bare():
    assert render_value(True) == "true"
    assert render_value(False) == "false"
    assert render_value(20) == "20"
    assert render_value(0.8) == "0.8"


def test_references_are_bare():
    assert render_value(Reference("aws_vpc", "web1_main", "id")) == "aws_vpc.web1_main.id"
    assert render_value(Reference("aws_availability_zones", "web1_main", "names[0]", mode="data")) == \
        "data.aws_availability_zones.web1_main.names[0]"
    assert render_value(VariableRef("region")) == "var.region"


def test_interpolation_is_quoted_with_template():
    value = Interpolation(("serviceAccount:", Reference("google_service_account", "ci_main", "email")))
    assert render_value(value) == '"serviceAccount:${google_service_account.ci_main.email}"'


def test_lists_are_single_line():
    assert render_value(["a", Reference("aws_subnet", "x_main"), 3]) == '["a", aws_subnet.x_main.id, 3]'


def test_maps_are_multi_line_objects():
    rendered = render_value({"Name": "web1", "ManagedBy": "terraform"}, depth=1)
    assert rendered == '{\n    Name      = "web1"\n    ManagedBy = "terraform"\n  }'


def test_map_keys_that_are_not_identifiers_are_quoted():
    assert '"kubernetes.io/role" = "web"' in render_value({"kubernetes.io/role": "web"})


def test_unsupported_value_raises():
    with pytest.raises(TypeError):
        render_value(object())


# ============================================================================
# Blocks
# ============================================================================

def test_block_attributes_are_aligned_and_nested_blocks_separated():
    lines = render_block("resource", ["aws_route_table", "a_main"], {
        "vpc_id": Reference("aws_vpc", "a_main"),
        "route": Block({"cidr_block": "0.0.0.0/0"}),
        "tags": None,
    })
    assert lines == [
        'resource "aws_route_table" "a_main" {',
        "  vpc_id = aws_vpc.a_main.id",
        "",
        "  route {",
        '    cidr_block = "0.0.0.0/0"',
        "  }",
        "}",
    ]


def test_list_of_blocks_renders_repeated_blocks():
    lines = render_block("resource", ["aws_security_group", "a_main"], {
        "ingress": [Block({"from_port": 22}), Block({"from_port": 80})],
    })
    text = "\n".join(lines)
    assert text.count("ingress {") == 2
    assert "ingress =" not in text


def test_empty_block():
    assert render_block("data", ["azurerm_client_config", "a_main"], {}) == [
        'data "azurerm_client_config" "a_main" {',
        "}",
    ]


def test_label_quote():
    assert quote("aws_vpc") == '"aws_vpc"'


# ============================================================================
# Files
# ============================================================================

def test_file_split_and_order(rds_values):
    files = serialize("aws", "rds", rds_values)
    assert list(files) == ["versions.tf", "providers.tf", "variables.tf", "main.tf", "outputs.tf", "terraform.tfvars"]


def test_outputs_and_tfvars_are_omitted_when_empty():
    graph = ResourceGraph(
        provider_id="aws",
        service_id="vpc",
        resources=[ResourceSpec("aws_vpc", "net_main", {"cidr_block": "10.0.0.0/16"}, role="primary")],
        variables=[VariableSpec(name="region", default="us-east-1")],
    )
    assert list(serialize_graph(graph)) == ["versions.tf", "providers.tf", "variables.tf", "main.tf"]


def test_outputs_file():
    graph = ResourceGraph(
        provider_id="aws",
        service_id="vpc",
        resources=[ResourceSpec("aws_vpc", "net_main", {}, role="primary")],
        outputs=[OutputSpec("vpc_id", Reference("aws_vpc", "net_main"), "ID of the VPC", sensitive=True)],
    )
    outputs = serialize_graph(graph)["outputs.tf"]
    assert 'output "vpc_id" {' in outputs
    assert re.search(r"value\s+= aws_vpc\.net_main\.id", outputs)
    assert re.search(r"sensitive\s+= true", outputs)


def test_versions_and_providers():
    files = serialize("azure", "managed_identity", {"identity_name": "ops"})

    assert 'source  = "hashicorp/azurerm"' in files["versions.tf"]
    assert 'version = "~> 3.0"' in files["versions.tf"]
    assert files["providers.tf"] == 'provider "azurerm" {\n  features {\n  }\n}\n'


def test_sensitive_variables_and_tfvars(rds_values):
    files = serialize("aws", "rds", rds_values)

    assert 'variable "password" {' in files["variables.tf"]
    assert re.search(r"sensitive\s+= true", files["variables.tf"])
    assert "type        = string" in files["variables.tf"]
    assert files["terraform.tfvars"] == 'password = "s3cret-Passw0rd"\n'
    assert "s3cret" not in files["main.tf"]
    assert re.search(r"password\s+= var\.password", files["main.tf"])


def test_ec2_main_tf_wiring(ec2_values):
    main = serialize("aws", "ec2", ec2_values)["main.tf"]

    assert re.search(r"subnet_id\s+= aws_subnet\.web1_main\.id", main)
    assert re.search(r"vpc_security_group_ids\s+= \[aws_security_group\.web1_main\.id\]", main)
    assert main.count("  ingress {") == 3
    assert main.index('resource "aws_vpc"') < main.index('resource "aws_instance"')


def test_bucket_rendering_with_versioning_and_public_access_block(s3_values):
    main = serialize("aws", "s3", s3_values)["main.tf"]

    assert 'resource "aws_s3_bucket" "my_bucket_main" {' in main
    assert re.search(r'bucket\s+= "my-bucket"', main)
    assert re.search(r'status = "Enabled"', main)
    assert len(re.findall(r"(block_public_acls|block_public_policy|ignore_public_acls|restrict_public_buckets)\s+= true", main)) == 4
    assert "object_lock" not in main
    assert "lifecycle" not in main


# ============================================================================
# External parser check over the whole catalog
# ============================================================================

@pytest.mark.parametrize("provider_id,service", all_services(), ids=service_ids())
@pytest.mark.parametrize("include_optional", [False, True])
def test_every_service_parses_as_hcl(provider_id, service, include_optional):
    validated, errors = validate_fields(service, sample_values(service, include_optional))
    assert errors == []
    graph = build_graph(provider_id, service, validated)
    files = serialize_graph(graph)

    for filename, text in files.items():
        hcl2.loads(text)

    parsed = hcl2.loads(files["main.tf"])
    declared_types = {key.strip('"') for entry in parsed.get("resource", []) for key in entry}
    assert {r.resource_type for r in graph.resources if r.mode == "resource"} <= declared_types


def test_serialization_is_deterministic(rds_values):
    assert serialize("aws", "rds", rds_values) == serialize("aws", "rds", rds_values)
