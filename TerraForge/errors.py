"""
Error Taxonomy Module

Responsibility:
- CatalogLookupError: unknown provider/service (user input error)
- FieldValidationError: one or more field-level problems, all collected together
- BuilderConfigurationError / UnknownDependencyKind: catalog/template mismatch (defect)
- MalformedGenerationError / LLMUnavailableError: AI path failures (always fall back)
- RunnerBusyError: a provisioning run is already active for the environment
"""

from typing import List, Optional


class TerraForgeError(Exception):
    """Base class for all generator errors."""


class CatalogLookupError(TerraForgeError):
    """Raised when a provider or service id is not in the catalog."""

    def __init__(self, provider_id: str, service_id: Optional[str] = None):
        self.provider_id = provider_id
        self.service_id = service_id
        if service_id is None:
            message = f"Unknown provider '{provider_id}'"
        else:
            message = f"Unknown service '{service_id}' for provider '{provider_id}'"
        super().__init__(message)


class FieldValidationError(TerraForgeError):
    """Carries every FieldError found for one request."""

    def __init__(self, errors: List):
        self.errors = list(errors)
        fields = ", ".join(e.field for e in self.errors)
        super().__init__(f"{len(self.errors)} invalid field(s): {fields}")


class BuilderConfigurationError(TerraForgeError):
    """Catalog and generation templates disagree. Never a user error."""


class UnknownDependencyKind(BuilderConfigurationError):
    def __init__(self, provider_id: str, service_id: str, kind: str):
        self.provider_id = provider_id
        self.service_id = service_id
        self.kind = kind
        super().__init__(
            f"Service '{provider_id}/{service_id}' declares dependency '{kind}' "
            f"which has no template for provider '{provider_id}'"
        )


class MalformedGenerationError(TerraForgeError):
    """AI output did not contain usable filename-marked sections."""


class LLMUnavailableError(TerraForgeError):
    """The LLM collaborator is not configured or the call failed."""


class RunnerBusyError(TerraForgeError):
    def __init__(self, environment: str):
        self.environment = environment
        super().__init__(f"A provisioning run is already in progress for '{environment}'")
