"""
Generation Engine Module

Responsibility:
- Expose the single generate() operation
- Orchestrate: catalog lookup → field validation → optional AI path → graph build → serialization
- Fall back to the template path on any AI failure or malformed AI output

Flow:
LOOKUP → VALIDATE → (AI_REQUESTED → AI_PARSED | FALLBACK) → GRAPH_BUILT → SERIALIZED

Catalog lookup errors propagate; validation errors are returned, never raised,
and stop the flow before any graph is built.
"""

import logging
from typing import Any, Callable, Dict, Optional

from config import LLM_CONFIG
from dependency_resolver import build_graph
from errors import LLMUnavailableError, MalformedGenerationError
from hcl_renderer import serialize_graph
from llm_interface import generate_terraform_text, parse_generated_files
from models import GenerationResult, ServiceDefinition
from resource_db import get_service
from validator import validate_fields


logger = logging.getLogger(__name__)


class GenerationEngine:
    """
    Turns (provider, service, user values) into Terraform files.

    `text_generator` is the LLM collaborator; it defaults to Claude and can be
    replaced by any callable with the same signature.
    """

    def __init__(self, ai_enabled: Optional[bool] = None, text_generator: Optional[Callable[..., str]] = None):
        self.ai_enabled = LLM_CONFIG["enabled"] if ai_enabled is None else ai_enabled
        self.text_generator = text_generator or generate_terraform_text

    def generate(self, provider_id: str, service_id: str, user_values: Dict[str, Any],
                 prompt: Optional[str] = None, use_ai: bool = False) -> GenerationResult:
        """
        Generate Terraform files for one service.

        Args:
            provider_id: Provider id (aws, gcp, azure)
            service_id: Service id within the provider's catalog
            user_values: Raw field values
            prompt: Extra natural-language context for the AI path
            use_ai: Try the AI path first (also on when AI is enabled globally)

        Returns:
            GenerationResult with files, or with field errors and no files

        Raises:
            CatalogLookupError: unknown provider or service
        """
        service = get_service(provider_id, service_id)

        validated, errors = validate_fields(service, user_values)
        if errors:
            logger.info("Validation failed for %s/%s: %s", provider_id, service_id, [e.field for e in errors])
            return GenerationResult(errors=errors)

        if use_ai or self.ai_enabled:
            files = self._try_ai(provider_id, service, validated, prompt)
            if files:
                return GenerationResult(files=files, source="ai")

        graph = build_graph(provider_id, service, validated)
        return GenerationResult(files=serialize_graph(graph), source="template", graph=graph)

    def _try_ai(self, provider_id: str, service: ServiceDefinition, validated: Dict[str, Any],
                prompt: Optional[str]) -> Optional[Dict[str, str]]:
        """AI-generated files, or None when the template path must be used instead."""
        requirements = {
            name: value for name, value in validated.items()
            if not (service.field(name) and service.field(name).sensitive)
        }

        try:
            text = self.text_generator(provider_id, service.name, requirements, prompt or "")
            return parse_generated_files(text)
        except (LLMUnavailableError, MalformedGenerationError) as e:
            logger.warning("AI generation unavailable for %s/%s, using templates: %s", provider_id, service.id, e)
            return None
        except Exception:
            logger.warning("AI generation failed for %s/%s, using templates", provider_id, service.id, exc_info=True)
            return None


def generate(provider_id: str, service_id: str, user_values: Dict[str, Any],
             prompt: Optional[str] = None, use_ai: bool = False) -> GenerationResult:
    """Module-level entry point using the default engine configuration."""
    return GenerationEngine().generate(provider_id, service_id, user_values, prompt=prompt, use_ai=use_ai)
