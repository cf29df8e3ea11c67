"""
LLM Interface Module

Responsibility:
- Ask Claude for Terraform text for a (provider, service, requirements) triple
- Split the returned text into files by locating "# <name>.tf" markers

IMPORTANT: The LLM output is treated as opaque text.

The LLM is ONLY used for:
1. Producing alternative Terraform text when the AI path is requested

The LLM is NEVER used for:
- Validation
- Catalog lookups
- Dependency expansion or reference wiring
- The template-based generation path (which is always the fallback)
"""

import json
import logging
import re
import warnings
from typing import Any, Dict

import anthropic
from anthropic import Anthropic, AnthropicVertex

from config import LLM_CONFIG
from errors import LLMUnavailableError, MalformedGenerationError

# Suppress the Google Auth quota project warning
warnings.filterwarnings("ignore", message=".*quota project.*", category=UserWarning)


logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are an expert Terraform code generator. Generate production-ready Terraform code based on the user's requirements. Always include:
- Provider configuration
- Resource definitions with best practices
- Variables for customization
- Outputs for important values
- Proper naming conventions
- Security best practices

Split the code into files. Start every file with a line containing only
"# <filename>.tf" (for example "# main.tf") and put nothing else on that line."""


_FILE_MARKER = re.compile(r"^#\s+([\w-]+\.tf)\s*$", re.MULTILINE)
_CODE_FENCE = re.compile(r"^```[\w-]*\s*$", re.MULTILINE)


def _get_anthropic_client():
    """
    Build the Anthropic client for the configured backend.

    - "anthropic": uses ANTHROPIC_API_KEY from the environment
    - "vertex": uses ANTHROPIC_VERTEX_PROJECT_ID / CLOUD_ML_REGION
    """
    backend = LLM_CONFIG["backend"]

    if backend == "vertex":
        project_id = LLM_CONFIG["vertex_project_id"]
        if not project_id:
            raise LLMUnavailableError("ANTHROPIC_VERTEX_PROJECT_ID environment variable not set")
        return AnthropicVertex(project_id=project_id, region=LLM_CONFIG["vertex_region"])

    if backend == "anthropic":
        api_key = LLM_CONFIG["api_key"]
        if not api_key:
            raise LLMUnavailableError("ANTHROPIC_API_KEY environment variable not set")
        return Anthropic(api_key=api_key)

    raise LLMUnavailableError(f"Unknown LLM backend '{backend}'")


def build_prompt(provider: str, service: str, requirements: Dict[str, Any], prompt: str = "") -> str:
    return (
        f"Generate Terraform code for {provider} {service} with these requirements:\n"
        f"{json.dumps(requirements, indent=2)}\n\n"
        f"Additional context: {prompt or 'none'}\n\n"
        "Please provide complete, working Terraform code with proper structure."
    )


def generate_terraform_text(provider: str, service: str, requirements: Dict[str, Any], prompt: str = "") -> str:
    """
    Ask Claude for Terraform text.

    Args:
        provider: Provider id (aws, gcp, azure)
        service: Service display name or id
        requirements: Validated field values
        prompt: Free-form extra context from the user

    Returns:
        Raw response text

    Raises:
        LLMUnavailableError: client not configured or the API call failed
    """
    client = _get_anthropic_client()
    logger.info("Requesting Terraform text for %s/%s from %s", provider, service, LLM_CONFIG["backend"])

    try:
        message = client.messages.create(
            model=LLM_CONFIG["model"],
            max_tokens=LLM_CONFIG["max_tokens"],
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": build_prompt(provider, service, requirements, prompt)}]
        )
    except anthropic.APIError as e:
        raise LLMUnavailableError(f"Error calling Claude API: {e}") from e

    text = "".join(block.text for block in message.content if getattr(block, "type", "") == "text")
    if not text.strip():
        raise LLMUnavailableError("Claude returned an empty response")

    return text


def parse_generated_files(text: str) -> Dict[str, str]:
    """
    Split AI output into files by "# <name>.tf" marker lines.

    Code fences are dropped; anything before the first marker is ignored.

    Raises:
        MalformedGenerationError: no marker, a repeated marker, or an empty file
    """
    cleaned = _CODE_FENCE.sub("", text)
    markers = list(_FILE_MARKER.finditer(cleaned))

    if not markers:
        raise MalformedGenerationError("No '# <name>.tf' file markers found in generated text")

    files = {}
    for index, marker in enumerate(markers):
        filename = marker.group(1)
        end = markers[index + 1].start() if index + 1 < len(markers) else len(cleaned)
        content = cleaned[marker.end():end].strip()

        if filename in files:
            raise MalformedGenerationError(f"File '{filename}' appears more than once in generated text")
        if not content:
            raise MalformedGenerationError(f"File '{filename}' is empty in generated text")

        files[filename] = content + "\n"

    return files
