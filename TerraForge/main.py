#!/usr/bin/env python3
"""
TerraForge Command Line

Responsibility:
- List the service catalog
- Collect field values from --set, a YAML values file, or interactive prompts
- Generate Terraform files and print them or write them to a directory

This is the interactive entry point for the system.
"""

import getpass
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml

from config import API_CONFIG
from errors import CatalogLookupError
from generation_engine import generate
from models import ServiceDefinition
from resource_db import get_service, list_providers, list_services, render_catalog_yaml


app = typer.Typer(
    help="Generate dependency-aware Terraform for a cloud service.",
    add_completion=False,
)


def print_header():
    """Print welcome header."""
    print()
    print("=" * 80)
    print("TERRAFORGE - TERRAFORM GENERATOR")
    print("=" * 80)
    print()


def get_user_input(prompt: str, secret: bool = False) -> str:
    """
    Get input from user with error handling.

    Args:
        prompt: Prompt to display to user
        secret: Do not echo the answer

    Returns:
        User input string
    """
    try:
        if secret:
            return getpass.getpass(prompt).strip()
        return input(prompt).strip()
    except (KeyboardInterrupt, EOFError):
        print("\n\nExiting...")
        sys.exit(0)


def choose(title: str, options: List[str]) -> str:
    """Ask the user to pick one option by number or by name."""
    print(title)
    for index, option in enumerate(options, 1):
        print(f"  {index}. {option}")

    while True:
        answer = get_user_input("> ")
        if answer in options:
            return answer
        if answer.isdigit() and 1 <= int(answer) <= len(options):
            return options[int(answer) - 1]
        print("(Please choose one of the listed options)")


def parse_set_options(assignments: List[str]) -> Dict[str, str]:
    """Parse repeated --set name=value options."""
    values = {}
    for assignment in assignments or []:
        name, sep, value = assignment.partition("=")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Expected name=value, got '{assignment}'", param_hint="--set")
        values[name.strip()] = value
    return values


def load_values_file(path: Path) -> Dict[str, Any]:
    """
    Load field values from a YAML mapping.

    Booleans are kept; every other scalar is read as a string, the way it
    would have been typed on the command line.
    """
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    if not isinstance(data, dict):
        raise typer.BadParameter("Values file must contain a mapping of field names to values", param_hint="--values")

    return {
        str(name): value if isinstance(value, bool) or value is None else str(value)
        for name, value in data.items()
    }


def prompt_missing_values(service: ServiceDefinition, values: Dict[str, Any]) -> Dict[str, Any]:
    """Ask for every required field that has neither a value nor a default."""
    values = dict(values)
    for spec in service.fields:
        if not spec.required or spec.default is not None or values.get(spec.name) not in (None, ""):
            continue

        label = spec.name.replace("_", " ")
        if spec.kind == "enum":
            values[spec.name] = choose(f"Select {label}:", list(spec.allowed_values))
        else:
            values[spec.name] = get_user_input(f"Enter {label}: ", secret=spec.sensitive)
    return values


def write_files(out_dir: Path, files: Dict[str, str]) -> List[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for filename, content in files.items():
        path = out_dir / filename
        path.write_text(content, encoding="utf-8")
        written.append(path)
    return written


@app.command()
def run(
    list_catalog: bool = typer.Option(False, "--list", help="Print the service catalog as YAML and exit"),
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="Provider id (aws, gcp, azure)"),
    service: Optional[str] = typer.Option(None, "--service", "-s", help="Service id within the provider"),
    set_values: Optional[List[str]] = typer.Option(None, "--set", help="Field value as name=value (repeatable)"),
    values_file: Optional[Path] = typer.Option(None, "--values", help="YAML file with field values"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Directory to write the generated files to"),
    use_ai: bool = typer.Option(False, "--ai", help="Try AI generation first, falling back to templates"),
    prompt: Optional[str] = typer.Option(None, "--prompt", help="Extra context for AI generation"),
    interactive: bool = typer.Option(True, "--interactive/--no-interactive", help="Prompt for missing values"),
) -> None:
    """Generate Terraform files for one catalog service."""
    logging.basicConfig(level=API_CONFIG["log_level"])

    if list_catalog:
        try:
            print(render_catalog_yaml(provider), end="")
        except CatalogLookupError as e:
            print(f"Error: {e}")
            raise typer.Exit(1)
        return

    print_header()

    try:
        if not provider:
            if not interactive:
                raise typer.BadParameter("--provider is required", param_hint="--provider")
            provider = choose("Select a cloud provider:", list_providers())
        if not service:
            if not interactive:
                raise typer.BadParameter("--service is required", param_hint="--service")
            service = choose("Select a service:", [s.id for s in list_services(provider)])
        definition = get_service(provider, service)
    except CatalogLookupError as e:
        print(f"Error: {e}")
        raise typer.Exit(1)

    values = load_values_file(values_file) if values_file else {}
    values.update(parse_set_options(set_values))
    if interactive:
        values = prompt_missing_values(definition, values)

    print()
    print(f"Generating Terraform for {definition.name} ({provider}/{service})...")
    print()

    result = generate(provider, service, values, prompt=prompt, use_ai=use_ai)

    if not result.ok:
        print("The following fields need attention:")
        for error in result.errors:
            print(f"  - {error.field}: {error.reason}")
            if error.options:
                print(f"    options: {', '.join(error.options)}")
        raise typer.Exit(1)

    if out:
        for path in write_files(out, result.files):
            print(f"  wrote {path}")
    else:
        for filename, content in result.files.items():
            print("=" * 80)
            print(f"# {filename}")
            print("=" * 80)
            print(content)

    print()
    print("=" * 80)
    print(f"Generated {len(result.files)} file(s) from {result.source}")
    print("=" * 80)


def main():
    app()


if __name__ == "__main__":
    main()
