"""
Resource Graph Builder Module

Responsibility:
- Expand a service's declared dependency kinds into concrete resources
- Run the service's primary template and wire references to the dependencies
- Order the graph: data lookups, then dependency resources, then primary resources
- Verify the graph never references an address that was not emitted earlier
- Verify at startup that the catalog and the registered templates agree

This is PURE deterministic logic.
NO I/O, NO LLM usage. Input values must come from the validator.
"""

import logging
from typing import Any, Dict, Iterator, List

import templates_aws  # noqa: F401  (registers AWS templates)
import templates_azure  # noqa: F401  (registers Azure templates)
import templates_gcp  # noqa: F401  (registers GCP templates)
from contracts import DEPENDENCY_KINDS, get_provider_contract
from errors import BuilderConfigurationError, CatalogLookupError, UnknownDependencyKind
from models import (
    Block,
    Interpolation,
    Reference,
    ResourceGraph,
    ResourceSpec,
    ServiceDefinition,
    VariableRef,
    VariableSpec,
)
from resource_db import list_providers, list_services
from service_templates import BuildContext, get_dependency_template, get_primary_template


logger = logging.getLogger(__name__)


def build_graph(provider_id: str, service: ServiceDefinition, validated_values: Dict[str, Any]) -> ResourceGraph:
    """
    Build the ordered resource graph for one service.

    Args:
        provider_id: Provider the service belongs to
        service: Catalog entry
        validated_values: Output of validator.validate_fields

    Returns:
        ResourceGraph whose references all point backwards
    """
    contract = get_provider_contract(provider_id)
    if contract is None:
        raise CatalogLookupError(provider_id)

    ctx = BuildContext(provider_id, service, validated_values)

    # Step 1: Dependencies, in declared order
    for kind in service.dependencies:
        template = get_dependency_template(provider_id, kind)
        if template is None:
            raise UnknownDependencyKind(provider_id, service.id, kind)
        template(ctx)

    # Step 2: Primary resource(s)
    primary = get_primary_template(provider_id, service.id)
    if primary is None:
        raise BuilderConfigurationError(f"No primary template registered for '{provider_id}/{service.id}'")
    ctx.phase = "primary"
    primary(ctx)

    # Step 3: Order and verify
    graph = ResourceGraph(
        provider_id=provider_id,
        service_id=service.id,
        resources=_order_resources(ctx.resources),
        variables=provider_variables(contract) + ctx.variables,
        outputs=ctx.outputs,
    )
    check_references(graph)

    return graph


def provider_variables(contract: dict) -> List[VariableSpec]:
    return [
        VariableSpec(name=v["name"], description=v["description"], default=v.get("default"))
        for v in contract["variables"]
    ]


def _order_resources(resources: List[ResourceSpec]) -> List[ResourceSpec]:
    """Stable partition: data lookups, dependency resources, primary resources."""
    data = [r for r in resources if r.mode == "data"]
    dependencies = [r for r in resources if r.mode != "data" and r.role == "dependency"]
    primaries = [r for r in resources if r.mode != "data" and r.role == "primary"]
    return data + dependencies + primaries


def iter_references(value: Any) -> Iterator[Any]:
    """Yield every Reference and VariableRef nested anywhere inside an attribute value."""
    if isinstance(value, (Reference, VariableRef)):
        yield value
    elif isinstance(value, Interpolation):
        for part in value.parts:
            yield from iter_references(part)
    elif isinstance(value, Block):
        for item in value.attributes.values():
            yield from iter_references(item)
    elif isinstance(value, dict):
        for item in value.values():
            yield from iter_references(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_references(item)


def check_references(graph: ResourceGraph):
    """
    Post-condition of build_graph.

    - addresses are unique
    - every Reference targets an address emitted earlier in the graph
    - every VariableRef names a declared variable

    Raises BuilderConfigurationError on the first violation.
    """
    declared_variables = {v.name for v in graph.variables}
    seen = set()

    for resource in graph.resources:
        if resource.address in seen:
            raise BuilderConfigurationError(f"Duplicate address '{resource.address}' in {graph.provider_id}/{graph.service_id}")

        for ref in iter_references(resource.attributes):
            _check_one(graph, resource.address, ref, seen, declared_variables)

        seen.add(resource.address)

    for output in graph.outputs:
        for ref in iter_references(output.value):
            _check_one(graph, f"output.{output.name}", ref, seen, declared_variables)


def _check_one(graph: ResourceGraph, owner: str, ref, seen: set, declared_variables: set):
    if isinstance(ref, VariableRef):
        if ref.name not in declared_variables:
            raise BuilderConfigurationError(
                f"{owner} references undeclared variable '{ref.name}' in {graph.provider_id}/{graph.service_id}"
            )
    elif ref.target not in seen:
        raise BuilderConfigurationError(
            f"{owner} references '{ref.target}' which is not declared before it in {graph.provider_id}/{graph.service_id}"
        )


def check_catalog():
    """
    Startup validation of catalog against templates.

    Fails fast with UnknownDependencyKind / BuilderConfigurationError; a
    correct deployment never raises here.
    """
    service_count = 0

    for provider_id in list_providers():
        contract = get_provider_contract(provider_id)
        if contract is None:
            raise BuilderConfigurationError(f"Provider '{provider_id}' has no contract")

        prerequisites = contract["prerequisites"]

        for service in list_services(provider_id):
            for index, kind in enumerate(service.dependencies):
                if kind not in DEPENDENCY_KINDS or kind not in prerequisites:
                    raise UnknownDependencyKind(provider_id, service.id, kind)
                if get_dependency_template(provider_id, kind) is None:
                    raise UnknownDependencyKind(provider_id, service.id, kind)

                declared_before = service.dependencies[:index]
                for required in prerequisites[kind]:
                    if required not in declared_before:
                        raise BuilderConfigurationError(
                            f"Service '{provider_id}/{service.id}' declares '{kind}' "
                            f"without declaring '{required}' before it"
                        )

            if get_primary_template(provider_id, service.id) is None:
                raise BuilderConfigurationError(f"No primary template registered for '{provider_id}/{service.id}'")

            service_count += 1

    logger.info("Catalog check passed for %d services", service_count)
