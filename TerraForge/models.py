"""
Core Domain Models Module

Responsibility:
- Define the catalog schema classes (ServiceDefinition, FieldSpec)
- Define the resource graph classes (ResourceSpec, ResourceGraph) and the
  attribute value types that are not plain literals (Reference, VariableRef, Block)
- FieldError: Represents a single field-level validation failure
- GenerationResult: The outcome of one generate() call

Catalog classes are frozen: they are loaded once and shared by every request.
Graph classes are built fresh per request and never persisted.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


FIELD_KINDS = ("string", "boolean", "enum")

CATEGORIES = (
    "Compute",
    "Storage",
    "Database",
    "Networking",
    "Security",
    "Messaging",
    "Monitoring",
)


@dataclass(frozen=True)
class FieldSpec:
    """
    One input field of a catalog service.

    `pattern` is a full-match regex for string values (e.g. numeric strings),
    `sensitive` routes the value through a sensitive Terraform variable.
    """
    name: str
    kind: str = "string"
    required: bool = False
    allowed_values: Tuple[str, ...] = ()
    default: Any = None
    pattern: Optional[str] = None
    sensitive: bool = False

    def __post_init__(self):
        if self.kind not in FIELD_KINDS:
            raise ValueError(f"Field '{self.name}' has unknown kind '{self.kind}'")

        if self.kind == "enum":
            if not self.allowed_values:
                raise ValueError(f"Enum field '{self.name}' must declare allowed values")
            if self.default is not None and self.default not in self.allowed_values:
                raise ValueError(
                    f"Default '{self.default}' of field '{self.name}' is not one of {list(self.allowed_values)}"
                )
        elif self.allowed_values:
            raise ValueError(f"Only enum fields may declare allowed values (field '{self.name}')")

        if self.kind == "boolean" and self.default is not None and not isinstance(self.default, bool):
            raise ValueError(f"Default of boolean field '{self.name}' must be a bool")


@dataclass(frozen=True)
class ServiceDefinition:
    """A provisionable service of one provider."""
    id: str
    name: str
    category: str
    dependencies: Tuple[str, ...] = ()
    fields: Tuple[FieldSpec, ...] = ()
    description: str = ""

    def __post_init__(self):
        if self.category not in CATEGORIES:
            raise ValueError(f"Service '{self.id}' has unknown category '{self.category}'")

        names = [f.name for f in self.fields]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Service '{self.id}' declares duplicate fields: {duplicates}")

        if len(set(self.dependencies)) != len(self.dependencies):
            raise ValueError(f"Service '{self.id}' declares a dependency kind twice")

    def field(self, name: str) -> Optional[FieldSpec]:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    @property
    def naming_field(self) -> Optional[FieldSpec]:
        """First required field; its value names the generated resources."""
        for spec in self.fields:
            if spec.required:
                return spec
        return None


@dataclass(frozen=True)
class Reference:
    """
    Symbolic pointer to another resource's exposed attribute.

    Rendered unquoted, e.g. `aws_vpc.web1_main.id` or
    `data.aws_availability_zones.web1_main.names[0]`.
    """
    resource_type: str
    local_name: str
    attribute: str = "id"
    mode: str = "resource"

    @property
    def target(self) -> str:
        prefix = "data." if self.mode == "data" else ""
        return f"{prefix}{self.resource_type}.{self.local_name}"

    def expression(self) -> str:
        return f"{self.target}.{self.attribute}"


@dataclass(frozen=True)
class VariableRef:
    """Pointer to a declared input variable (`var.<name>`)."""
    name: str

    def expression(self) -> str:
        return f"var.{self.name}"


@dataclass(frozen=True)
class Interpolation:
    """
    Quoted string assembled from literal parts and references,
    e.g. "serviceAccount:${google_service_account.ci_main.email}".
    """
    parts: Tuple[Any, ...]


@dataclass
class Block:
    """Nested configuration block. A list of Blocks renders as repeated blocks."""
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ResourceSpec:
    """One declared resource (or data source) of the generated graph."""
    resource_type: str
    local_name: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    mode: str = "resource"  # "resource" or "data"
    role: str = "dependency"  # "dependency" or "primary"

    @property
    def address(self) -> str:
        prefix = "data." if self.mode == "data" else ""
        return f"{prefix}{self.resource_type}.{self.local_name}"

    def ref(self, attribute: str = "id") -> Reference:
        return Reference(self.resource_type, self.local_name, attribute, self.mode)


@dataclass
class VariableSpec:
    """Input variable declaration. `value` is what lands in terraform.tfvars."""
    name: str
    type: str = "string"
    description: str = ""
    default: Any = None
    sensitive: bool = False
    value: Any = None


@dataclass
class OutputSpec:
    name: str
    value: Any
    description: str = ""
    sensitive: bool = False


@dataclass
class ResourceGraph:
    """
    Ordered resource graph for one generation request.

    Dependency resources always precede primary resources.
    """
    provider_id: str
    service_id: str
    resources: List[ResourceSpec] = field(default_factory=list)
    variables: List[VariableSpec] = field(default_factory=list)
    outputs: List[OutputSpec] = field(default_factory=list)

    def dependencies(self) -> List[ResourceSpec]:
        return [r for r in self.resources if r.role == "dependency"]

    def primaries(self) -> List[ResourceSpec]:
        return [r for r in self.resources if r.role == "primary"]

    def find(self, resource_type: str) -> List[ResourceSpec]:
        return [r for r in self.resources if r.resource_type == resource_type]

    def addresses(self) -> List[str]:
        return [r.address for r in self.resources]


@dataclass
class FieldError:
    """
    A single field-level validation failure.

    Returned by the validator; `field` lets a caller highlight the offending input.
    """
    field: str
    code: str  # MissingRequiredField, InvalidEnumValue, TypeMismatch, PatternMismatch
    reason: str
    value: Any = None
    options: Optional[List[str]] = None


@dataclass
class GenerationResult:
    """Files produced by generate(), or the field errors that prevented it."""
    files: Dict[str, str] = field(default_factory=dict)
    errors: List[FieldError] = field(default_factory=list)
    source: str = "template"  # "template" or "ai"
    graph: Optional[ResourceGraph] = None

    @property
    def ok(self) -> bool:
        return not self.errors
