"""
Generation Template Registry Module

Responsibility:
- Hold the lookup tables of dependency templates (provider, dependency kind)
  and primary templates (provider, service id)
- Provide BuildContext, the per-request scratchpad templates write resources into

Adding a service means registering one primary template; nothing else changes.
Templates are plain functions taking a BuildContext; they never do I/O.
"""

import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from models import (
    OutputSpec,
    ResourceSpec,
    ServiceDefinition,
    VariableRef,
    VariableSpec,
)


DEPENDENCY_TEMPLATES: Dict[Tuple[str, str], Callable] = {}
PRIMARY_TEMPLATES: Dict[Tuple[str, str], Callable] = {}


def dependency_template(provider_id: str, kind: str):
    """Register the synthesizer of one dependency kind for one provider."""
    def register(func):
        DEPENDENCY_TEMPLATES[(provider_id, kind)] = func
        return func
    return register


def primary_template(provider_id: str, service_id: str):
    """Register the primary-resource template of one catalog service."""
    def register(func):
        PRIMARY_TEMPLATES[(provider_id, service_id)] = func
        return func
    return register


def get_dependency_template(provider_id: str, kind: str) -> Optional[Callable]:
    return DEPENDENCY_TEMPLATES.get((provider_id, kind))


def get_primary_template(provider_id: str, service_id: str) -> Optional[Callable]:
    return PRIMARY_TEMPLATES.get((provider_id, service_id))


_NON_IDENTIFIER = re.compile(r"[^a-z0-9_]+")


def slugify(value: Any) -> str:
    """Turn a user value into a Terraform identifier fragment ("" if nothing usable)."""
    slug = _NON_IDENTIFIER.sub("_", str(value or "").strip().lower()).strip("_")
    slug = re.sub(r"_+", "_", slug)
    if slug and slug[0].isdigit():
        slug = f"r_{slug}"
    return slug


class BuildContext:
    """
    Mutable state of one build_graph() call.

    Resources are appended in creation order; `role` records whether they were
    created while synthesizing dependencies or the primary resource.
    """

    def __init__(self, provider_id: str, service: ServiceDefinition, values: dict):
        self.provider_id = provider_id
        self.service = service
        self.values = values
        self.resources: List[ResourceSpec] = []
        self.variables: List[VariableSpec] = []
        self.outputs: List[OutputSpec] = []
        self.phase = "dependency"
        self._by_kind: Dict[str, ResourceSpec] = {}

        naming = service.naming_field
        raw_name = values.get(naming.name) if naming else None
        self.display_name = str(raw_name) if raw_name not in (None, "") else service.id
        self.base = slugify(raw_name) if naming else ""

    # Naming

    def name(self, role: str = "main") -> str:
        """Deterministic local name: naming-field slug plus a role suffix."""
        return f"{self.base}_{role}" if self.base else role

    def label(self, suffix: str = "") -> str:
        """Human-facing name attribute derived from the naming field value."""
        return f"{self.display_name}-{suffix}" if suffix else self.display_name

    def tags(self, suffix: str = "") -> dict:
        return {"Name": self.label(suffix), "ManagedBy": "terraform"}

    # Resources

    def add(self, resource_type: str, attributes: dict, role: str = "main",
            mode: str = "resource", kind: Optional[str] = None,
            graph_role: Optional[str] = None) -> ResourceSpec:
        """
        Append a resource and return it.

        `kind` registers the resource under a lookup key (e.g. "network") so
        later templates can reference it. `graph_role` overrides the current
        phase, for primary templates that need an extra dependency.
        """
        spec = ResourceSpec(
            resource_type=resource_type,
            local_name=self.name(role),
            attributes={k: v for k, v in attributes.items() if v is not None},
            mode=mode,
            role=graph_role or self.phase,
        )
        self.resources.append(spec)
        if kind:
            self._by_kind[kind] = spec
        return spec

    def has(self, kind: str) -> bool:
        return kind in self._by_kind

    def get(self, kind: str) -> ResourceSpec:
        return self._by_kind[kind]

    def ref(self, kind: str, attribute: str = "id"):
        return self._by_kind[kind].ref(attribute)

    # Values

    def value(self, field_name: str, default: Any = None) -> Any:
        """
        Validated value of a field.

        Sensitive fields are never returned as literals: they become a
        sensitive variable and a `var.` reference.
        """
        spec = self.service.field(field_name)
        raw = self.values.get(field_name, default)
        if spec is not None and spec.sensitive and raw is not None:
            return self.variable(field_name, value=raw, sensitive=True,
                                 description=f"{describe_field(field_name)} for {self.service.name}")
        return raw

    def number(self, field_name: str, default: int) -> int:
        raw = self.values.get(field_name)
        return int(raw) if raw not in (None, "") else default

    def flag(self, field_name: str) -> bool:
        """True when a boolean field is set or an enum field says "Enabled"/"true"."""
        raw = self.values.get(field_name)
        if isinstance(raw, bool):
            return raw
        return raw in ("Enabled", "true")

    def variable(self, name: str, value: Any = None, default: Any = None,
                 sensitive: bool = False, description: str = "", type: str = "string") -> VariableRef:
        if not any(v.name == name for v in self.variables):
            self.variables.append(VariableSpec(
                name=name, type=type, description=description,
                default=default, sensitive=sensitive, value=value,
            ))
        return VariableRef(name)

    def output(self, name: str, value: Any, description: str = "", sensitive: bool = False):
        self.outputs.append(OutputSpec(name=name, value=value, description=description, sensitive=sensitive))


def describe_field(name: str) -> str:
    return " ".join(word.capitalize() for word in name.split("_"))
