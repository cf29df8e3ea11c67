"""
HCL Renderer Module

Responsibility:
- Deterministically serialize a ResourceGraph into Terraform files
- Quote and escape literal strings; emit booleans, numbers and references bare
- Render Blocks as nested blocks and lists of Blocks as repeated blocks
- Align consecutive single-line attributes the way `terraform fmt` does

This is PURE rendering logic.
"""

import re
from typing import Any, Dict, List

from contracts import get_provider_contract
from models import Block, Interpolation, Reference, ResourceGraph, VariableRef


INDENT = "  "

REQUIRED_TERRAFORM_VERSION = ">= 1.3"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


class _Raw(str):
    """Pre-rendered expression emitted verbatim (e.g. a type constraint)."""


def serialize_graph(graph: ResourceGraph) -> Dict[str, str]:
    """
    Serialize a resource graph into named Terraform files.

    Args:
        graph: Graph returned by build_graph()

    Returns:
        Ordered mapping of filename -> file content
    """
    contract = get_provider_contract(graph.provider_id)

    files = {
        "versions.tf": render_versions(contract),
        "providers.tf": render_providers(contract),
        "variables.tf": render_variables(graph),
        "main.tf": render_main(graph),
    }

    if graph.outputs:
        files["outputs.tf"] = render_outputs(graph)

    tfvars = render_tfvars(graph)
    if tfvars:
        files["terraform.tfvars"] = tfvars

    return files


# ============================================================================
# FILES
# ============================================================================

def render_versions(contract: dict) -> str:
    terraform = {
        "required_version": REQUIRED_TERRAFORM_VERSION,
        "required_providers": Block({
            contract["local_name"]: {
                "source": contract["source"],
                "version": contract["version"],
            },
        }),
    }
    return _join(render_block("terraform", [], terraform))


def render_providers(contract: dict) -> str:
    attributes = {key: _contract_value(value) for key, value in contract["provider_block"].items()}
    return _join(render_block("provider", [contract["local_name"]], attributes))


def render_variables(graph: ResourceGraph) -> str:
    blocks = []
    for variable in graph.variables:
        attributes = {
            "description": variable.description or None,
            "type": _Raw(variable.type),
            "default": variable.default,
            "sensitive": True if variable.sensitive else None,
        }
        blocks.append(render_block("variable", [variable.name], attributes))
    return _join(*blocks)


def render_main(graph: ResourceGraph) -> str:
    sections = [
        ("Data sources", [r for r in graph.resources if r.mode == "data"]),
        ("Dependencies", [r for r in graph.dependencies() if r.mode != "data"]),
        ("Primary resources", [r for r in graph.primaries() if r.mode != "data"]),
    ]

    chunks = [[f"# Generated for {graph.provider_id}/{graph.service_id}"]]
    for title, resources in sections:
        if not resources:
            continue
        chunks.append([f"# {title}"])
        for resource in resources:
            keyword = "data" if resource.mode == "data" else "resource"
            chunks.append(render_block(keyword, [resource.resource_type, resource.local_name], resource.attributes))

    return _join(*chunks)


def render_outputs(graph: ResourceGraph) -> str:
    blocks = []
    for output in graph.outputs:
        attributes = {
            "description": output.description or None,
            "value": output.value,
            "sensitive": True if output.sensitive else None,
        }
        blocks.append(render_block("output", [output.name], attributes))
    return _join(*blocks)


def render_tfvars(graph: ResourceGraph) -> str:
    """Assignments for every variable that carries a value; "" when there are none."""
    assignments = {v.name: v.value for v in graph.variables if v.value is not None}
    if not assignments:
        return ""
    return "\n".join(render_body(assignments, 0)) + "\n"


def _contract_value(value: Any) -> Any:
    """Contract strings "var.x" are variable references; dicts are nested blocks."""
    if isinstance(value, str) and value.startswith("var."):
        return VariableRef(value[len("var."):])
    if isinstance(value, dict):
        return Block({k: _contract_value(v) for k, v in value.items()})
    return value


def _join(*chunks: List[str]) -> str:
    return "\n\n".join("\n".join(chunk) for chunk in chunks) + "\n"


# ============================================================================
# BLOCKS AND VALUES
# ============================================================================

def render_block(keyword: str, labels: List[str], attributes: Dict[str, Any], depth: int = 0) -> List[str]:
    pad = INDENT * depth
    header = " ".join([keyword] + [quote(label) for label in labels])
    body = render_body(attributes, depth + 1)
    return [f"{pad}{header} {{"] + body + [f"{pad}}}"]


def render_body(attributes: Dict[str, Any], depth: int) -> List[str]:
    """
    Render block contents.

    Runs of plain attributes are aligned on "="; nested blocks are separated
    from surrounding attributes by a blank line.
    """
    pad = INDENT * depth
    lines: List[str] = []
    pending = []

    def flush():
        if not pending:
            return
        if lines:
            lines.append("")
        width = max(len(key) for key, _ in pending)
        for key, rendered in pending:
            lines.append(f"{pad}{key.ljust(width)} = {rendered}")
        pending.clear()

    for key, value in attributes.items():
        if value is None:
            continue

        if _is_block_list(value):
            flush()
            blocks = value if isinstance(value, list) else [value]
            for block in blocks:
                if lines:
                    lines.append("")
                lines.extend(render_block(key, [], block.attributes, depth))
            continue

        pending.append((_object_key(key), render_value(value, depth)))

    flush()
    return lines


def render_value(value: Any, depth: int = 0) -> str:
    """Render one attribute value as an HCL expression."""
    if isinstance(value, _Raw):
        return str(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return quote(value)
    if isinstance(value, (Reference, VariableRef)):
        return value.expression()
    if isinstance(value, Interpolation):
        return '"' + "".join(
            escape(part) if isinstance(part, str) else "${" + part.expression() + "}"
            for part in value.parts
        ) + '"'
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(render_value(item, depth) for item in value) + "]"
    if isinstance(value, dict):
        if not value:
            return "{}"
        inner = render_body(value, depth + 1)
        return "{\n" + "\n".join(inner) + "\n" + INDENT * depth + "}"

    raise TypeError(f"Cannot render value of type {type(value).__name__}")


def _is_block_list(value: Any) -> bool:
    if isinstance(value, Block):
        return True
    return isinstance(value, list) and bool(value) and all(isinstance(item, Block) for item in value)


def _object_key(key: str) -> str:
    return key if _IDENTIFIER.match(key) else quote(key)


def escape(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
        .replace("${", "$${")
        .replace("%{", "%%{")
    )


def quote(text: str) -> str:
    return f'"{escape(text)}"'
