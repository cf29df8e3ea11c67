"""Tests for resource graph building and reference wiring."""

import pytest

from conftest import all_services, sample_values, service_ids
from dependency_resolver import build_graph, check_catalog, check_references, iter_references
from errors import BuilderConfigurationError, UnknownDependencyKind
from models import (
    Block,
    Interpolation,
    Reference,
    ResourceGraph,
    ResourceSpec,
    ServiceDefinition,
    FieldSpec,
    VariableRef,
    VariableSpec,
)
from resource_db import get_service
from service_templates import PRIMARY_TEMPLATES, slugify
from validator import validate_fields


def build(provider_id, service_id, values):
    service = get_service(provider_id, service_id)
    validated, errors = validate_fields(service, values)
    assert errors == []
    return build_graph(provider_id, service, validated)


def managed_types(graph):
    return [r.resource_type for r in graph.resources if r.mode == "resource"]


# ============================================================================
# Virtual machine with network, subnet and security boundary
# ============================================================================

def test_ec2_graph_order(ec2_values):
    graph = build("aws", "ec2", ec2_values)

    assert managed_types(graph) == [
        "aws_vpc",
        "aws_subnet",
        "aws_internet_gateway",
        "aws_route_table",
        "aws_route_table_association",
        "aws_security_group",
        "aws_instance",
    ]
    assert [r.role for r in graph.resources if r.mode == "resource"][-1] == "primary"


def test_ec2_instance_references_subnet_and_security_group(ec2_values):
    graph = build("aws", "ec2", ec2_values)
    instance = graph.find("aws_instance")[0]

    assert instance.attributes["subnet_id"] == Reference("aws_subnet", "web1_main", "id")
    assert instance.attributes["vpc_security_group_ids"] == [Reference("aws_security_group", "web1_main", "id")]


def test_ec2_security_group_opens_web_ports(ec2_values):
    graph = build("aws", "ec2", ec2_values)
    group = graph.find("aws_security_group")[0]

    ingress = group.attributes["ingress"]
    assert [rule.attributes["from_port"] for rule in ingress] == [22, 80, 443]
    assert all(rule.attributes["cidr_blocks"] == ["0.0.0.0/0"] for rule in ingress)
    assert group.attributes["egress"].attributes["protocol"] == "-1"
    assert group.attributes["vpc_id"] == Reference("aws_vpc", "web1_main", "id")


def test_subnet_uses_availability_zone_lookup(ec2_values):
    graph = build("aws", "ec2", ec2_values)

    assert graph.resources[0].mode == "data"
    assert graph.resources[0].address == "data.aws_availability_zones.web1_main"
    subnet = graph.find("aws_subnet")[0]
    assert subnet.attributes["availability_zone"].expression() == "data.aws_availability_zones.web1_main.names[0]"


def test_local_names_derive_from_naming_field():
    graph = build("aws", "ec2", {"instance_name": "Web Server #1"})
    assert graph.find("aws_instance")[0].local_name == "web_server_1_main"


def test_slugify():
    assert slugify("My Bucket!") == "my_bucket"
    assert slugify("42-things") == "r_42_things"
    assert slugify("") == ""


# ============================================================================
# Database and secondary dependencies
# ============================================================================

def test_rds_opens_only_engine_port_to_network(rds_values):
    graph = build("aws", "rds", rds_values)
    group = graph.find("aws_security_group")[0]

    ingress = group.attributes["ingress"]
    assert len(ingress) == 1
    assert ingress[0].attributes["from_port"] == 5432
    assert ingress[0].attributes["cidr_blocks"] == ["10.0.0.0/16"]


def test_rds_extra_dependencies_precede_database(rds_values):
    graph = build("aws", "rds", rds_values)
    addresses = graph.addresses()

    assert addresses.index("aws_subnet.orders_secondary") < addresses.index("aws_db_instance.orders_main")
    assert addresses.index("aws_db_subnet_group.orders_main") < addresses.index("aws_db_instance.orders_main")
    assert [r.resource_type for r in graph.primaries()] == ["aws_db_instance"]


def test_rds_password_becomes_sensitive_variable(rds_values):
    graph = build("aws", "rds", rds_values)
    database = graph.find("aws_db_instance")[0]

    assert database.attributes["password"] == VariableRef("password")
    variable = next(v for v in graph.variables if v.name == "password")
    assert variable.sensitive is True
    assert variable.value == "s3cret-Passw0rd"


def test_provider_variables_come_first():
    graph = build("gcp", "storage_bucket", {"bucket_name": "assets"})
    assert [v.name for v in graph.variables] == ["project_id", "region"]


def test_azure_services_are_placed_in_resource_group():
    graph = build("azure", "key_vault", {"vault_name": "secrets"})
    vault = graph.find("azurerm_key_vault")[0]

    assert vault.attributes["resource_group_name"] == Reference("azurerm_resource_group", "secrets_main", "name")
    assert vault.attributes["tenant_id"].target == "data.azurerm_client_config.secrets_main"


def test_azure_vm_security_group_is_associated_with_subnet():
    graph = build("azure", "virtual_machine", {"vm_name": "jump", "ssh_public_key": "ssh-ed25519 AAAA"})
    rules = graph.find("azurerm_network_security_group")[0].attributes["security_rule"]

    assert [r.attributes["priority"] for r in rules] == [1001, 1002, 1003]
    assert len(graph.find("azurerm_subnet_network_security_group_association")) == 1


def test_service_without_dependencies_has_only_primaries():
    graph = build("aws", "sqs", {"queue_name": "jobs"})
    assert graph.dependencies() == []
    assert managed_types(graph) == ["aws_sqs_queue"]


# ============================================================================
# Conditional sub-resources
# ============================================================================

@pytest.mark.parametrize("provider_id,service_id,values,gate,resource_type", [
    ("aws", "ec2", {"instance_name": "web1"}, "elastic_ip", "aws_eip"),
    ("aws", "lambda", {"function_name": "fn", "runtime": "python3.12"}, "dead_letter_queue", "aws_sqs_queue"),
    ("aws", "dynamodb", {"table_name": "t", "hash_key": "id"}, "point_in_time_recovery", None),
    ("gcp", "pubsub_topic", {"topic_name": "events"}, "create_subscription", "google_pubsub_subscription"),
    ("gcp", "compute_instance", {"instance_name": "vm"}, "public_ip", None),
    ("azure", "virtual_machine", {"vm_name": "vm", "ssh_public_key": "ssh-ed25519 AAAA"}, "public_ip", "azurerm_public_ip"),
    ("azure", "storage_account", {"storage_name": "assets01"}, "create_container", "azurerm_storage_container"),
])
def test_optional_boolean_gates_sub_resource(provider_id, service_id, values, gate, resource_type):
    omitted = build(provider_id, service_id, values)
    enabled = build(provider_id, service_id, {**values, gate: True})
    disabled = build(provider_id, service_id, {**values, gate: False})

    if resource_type:
        assert omitted.find(resource_type) == []
        assert disabled.find(resource_type) == []
        assert len(enabled.find(resource_type)) == 1
    else:
        assert len(enabled.addresses()) == len(omitted.addresses())
        primary = enabled.primaries()[0]
        assert primary.attributes != omitted.primaries()[0].attributes


def test_s3_default_sub_resources(s3_values):
    graph = build("aws", "s3", s3_values)

    assert managed_types(graph) == [
        "aws_s3_bucket",
        "aws_s3_bucket_versioning",
        "aws_s3_bucket_public_access_block",
        "aws_s3_bucket_server_side_encryption_configuration",
    ]
    block = graph.find("aws_s3_bucket_public_access_block")[0]
    assert all(block.attributes[flag] is True for flag in (
        "block_public_acls", "block_public_policy", "ignore_public_acls", "restrict_public_buckets",
    ))


def test_s3_disabled_versioning_and_public_access_are_omitted():
    graph = build("aws", "s3", {
        "bucket_name": "open",
        "versioning": "Disabled",
        "public_access_block": "Allow public access",
    })
    assert graph.find("aws_s3_bucket_versioning") == []
    assert graph.find("aws_s3_bucket_public_access_block") == []


def test_s3_object_lock_and_lifecycle_when_enabled(s3_values):
    graph = build("aws", "s3", {**s3_values, "object_lock": "Enabled", "lifecycle_policy": "Enabled"})

    assert len(graph.find("aws_s3_bucket_object_lock_configuration")) == 1
    assert len(graph.find("aws_s3_bucket_lifecycle_configuration")) == 1
    assert graph.find("aws_s3_bucket")[0].attributes["object_lock_enabled"] is True


def test_iam_member_interpolates_service_account_email():
    graph = build("gcp", "iam_service_account", {"account_id": "ci", "project_role": "roles/viewer"})
    member = graph.find("google_project_iam_member")[0].attributes["member"]

    assert isinstance(member, Interpolation)
    assert member.parts[1] == Reference("google_service_account", "ci_main", "email")


# ============================================================================
# Exhaustive post-condition over the catalog
# ============================================================================

@pytest.mark.parametrize("provider_id,service", all_services(), ids=service_ids())
@pytest.mark.parametrize("include_optional", [False, True])
def test_no_forward_or_dangling_references(provider_id, service, include_optional):
    validated, errors = validate_fields(service, sample_values(service, include_optional))
    assert errors == []

    graph = build_graph(provider_id, service, validated)

    seen = set()
    variables = {v.name for v in graph.variables}
    for resource in graph.resources:
        for ref in iter_references(resource.attributes):
            if isinstance(ref, VariableRef):
                assert ref.name in variables
            else:
                assert ref.target in seen, f"{resource.address} -> {ref.target}"
        assert resource.address not in seen
        seen.add(resource.address)

    roles = [r.role for r in graph.resources if r.mode == "resource"]
    assert roles == sorted(roles, key=lambda role: role != "dependency")
    assert graph.primaries()


@pytest.mark.parametrize("provider_id,service", all_services(), ids=service_ids())
def test_attribute_values_are_never_address_strings(provider_id, service):
    validated, _ = validate_fields(service, sample_values(service, True))
    graph = build_graph(provider_id, service, validated)

    addresses = set(graph.addresses())
    for resource in graph.resources:
        for value in resource.attributes.values():
            if isinstance(value, str):
                assert not any(value.startswith(a + ".") for a in addresses)


# ============================================================================
# Defect detection
# ============================================================================

def _graph(*resources, variables=()):
    return ResourceGraph(provider_id="aws", service_id="test", resources=list(resources), variables=list(variables))


def test_check_references_rejects_forward_reference():
    graph = _graph(
        ResourceSpec("aws_subnet", "a_main", {"vpc_id": Reference("aws_vpc", "a_main")}),
        ResourceSpec("aws_vpc", "a_main", {"cidr_block": "10.0.0.0/16"}),
    )
    with pytest.raises(BuilderConfigurationError, match="aws_vpc.a_main"):
        check_references(graph)


def test_check_references_walks_nested_blocks():
    graph = _graph(
        ResourceSpec("aws_route_table", "a_main", {"route": Block({"gateway_id": Reference("aws_internet_gateway", "a_main")})}),
    )
    with pytest.raises(BuilderConfigurationError):
        check_references(graph)


def test_check_references_rejects_duplicate_address():
    graph = _graph(ResourceSpec("aws_vpc", "a_main"), ResourceSpec("aws_vpc", "a_main"))
    with pytest.raises(BuilderConfigurationError, match="Duplicate"):
        check_references(graph)


def test_check_references_rejects_undeclared_variable():
    graph = _graph(ResourceSpec("aws_db_instance", "a_main", {"password": VariableRef("password")}))
    with pytest.raises(BuilderConfigurationError, match="password"):
        check_references(graph)

    graph.variables.append(VariableSpec(name="password", sensitive=True))
    check_references(graph)


def test_unknown_dependency_kind_is_a_configuration_error():
    service = ServiceDefinition(
        id="ec2",
        name="Odd",
        category="Compute",
        dependencies=("resource-group",),
        fields=(FieldSpec(name="instance_name", required=True),),
    )
    with pytest.raises(UnknownDependencyKind):
        build_graph("aws", service, {"instance_name": "x"})


def test_check_catalog_detects_missing_primary_template(monkeypatch):
    monkeypatch.delitem(PRIMARY_TEMPLATES, ("aws", "sns"))
    with pytest.raises(BuilderConfigurationError, match="aws/sns"):
        check_catalog()


def test_builds_are_independent(ec2_values):
    first = build("aws", "ec2", ec2_values)
    second = build("aws", "ec2", {"instance_name": "web2"})

    assert first.addresses() != second.addresses()
    assert build("aws", "ec2", ec2_values).addresses() == first.addresses()
