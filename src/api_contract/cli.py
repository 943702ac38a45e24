"""CLI entry point for api-contract."""

import importlib
import json
import logging
from pathlib import Path

import click
import yaml

from api_contract.config import load_document_info
from api_contract.context import ContractSnapshot
from api_contract.errors import ConfigurationError

DEFAULT_APP = "api_contract.petstore:build_petstore"

_app_option = click.option(
    "--app", default=DEFAULT_APP, show_default=True,
    help="Factory returning a frozen contract, as module:function.",
)
_config_option = click.option(
    "--config", "config_path", default=None, type=click.Path(exists=True, path_type=Path),
    help="YAML file with document title, version, servers and tags.",
)


def _load_snapshot(app: str, config_path: Path | None) -> ContractSnapshot:
    """Import the contract factory and build the snapshot."""
    module_name, _, attr = app.partition(":")
    if not module_name or not attr:
        raise click.BadParameter(f"expected module:function, got '{app}'", param_hint="--app")
    try:
        factory = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise click.BadParameter(f"cannot load '{app}': {e}", param_hint="--app") from e

    try:
        if config_path is None:
            return factory()
        return factory(load_document_info(config_path))
    except ConfigurationError as e:
        raise click.ClickException(f"Invalid contract: {e}") from e


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log registration and validation details.")
def main(verbose: bool):
    """API Contract: validate payloads and publish OpenAPI docs from one schema."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output file for the OpenAPI document.")
@click.option("--format", "fmt", default="json", type=click.Choice(["json", "yaml"]), help="Document format.")
@_app_option
@_config_option
def export(output: Path, fmt: str, app: str, config_path: Path | None):
    """Assemble the OpenAPI document and write it to a file."""
    snapshot = _load_snapshot(app, config_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(snapshot.render(fmt), encoding="utf-8")
    click.echo(f"Wrote {len(snapshot.routes())} routes and {len(snapshot.schema_names())} schemas to {output}")


@main.command()
@click.argument("schema_name")
@click.argument("payload_path", type=click.Path(exists=True, path_type=Path))
@_app_option
@click.pass_context
def validate(ctx: click.Context, schema_name: str, payload_path: Path, app: str):
    """Validate a JSON or YAML payload file against a registered schema."""
    snapshot = _load_snapshot(app, None)
    if schema_name not in snapshot.schema_names():
        raise click.BadParameter(
            f"unknown schema '{schema_name}', expected one of {snapshot.schema_names()}",
            param_hint="SCHEMA_NAME",
        )

    try:
        payload = yaml.safe_load(payload_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise click.ClickException(f"{payload_path}: cannot parse payload: {e}") from e

    result = snapshot.validator(schema_name).validate(payload)
    if result.ok:
        click.echo(f"{payload_path} is a valid {schema_name}")
        click.echo(json.dumps(result.value, indent=2, ensure_ascii=False, default=str))
        return

    click.echo(f"{payload_path} is not a valid {schema_name}:")
    for violation in result.errors:
        location = violation.path or "(root)"
        click.echo(f"  {location}: {violation.message} [{violation.constraint_kind}]")
    ctx.exit(1)


@main.command()
@_app_option
def routes(app: str):
    """List declared routes with their request and response schemas."""
    snapshot = _load_snapshot(app, None)
    for route in snapshot.routes():
        request = route.request_schema or "-"
        response = route.response_schema or "-"
        click.echo(f"{route.method:<7} {route.path:<30} {request} -> {response}  {route.summary}")
