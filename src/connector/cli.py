"""Meraki connector CLI (merakictl).

Usage:
    merakictl orgs list                         # Organization ids
    merakictl orgs show ORG_ID                  # One organization
    merakictl network plan branch.yaml          # Show the pending operation
    merakictl network apply branch.yaml         # Refresh, then converge
    merakictl network refresh NAME              # Re-read remote truth
    merakictl network import NAME NETWORK_ID    # Adopt an existing network
    merakictl network show NAME                 # Print persisted state
    merakictl network destroy NAME              # Delete the network

Observed state is persisted per resource name under MERAKI_STATE_DIR.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import click

from .config import Config, ConfigurationError
from .gateway import GatewayError
from .main import setup_logging
from .projection import (
    StateProjectionError,
    network_from_persisted,
    network_to_persisted,
    organization_ids_to_persisted,
    organization_to_persisted,
)
from .provider import Provider, configure_provider
from .reconciler import ConfigurationViolation, Operation, ReconcileResult, Severity
from .security import CredentialError
from .spec_loader import (
    SpecLoadError,
    load_network_spec,
    load_state_document,
    remove_state_document,
    validate_resource_name,
    write_state_document,
)

VERSION = "0.1.0"

# Exit codes
EXIT_DIAGNOSTIC_ERROR = 1


def _provider(ctx: click.Context) -> Provider:
    """Lazily configure the provider once per invocation."""
    obj: dict[str, Any] = ctx.ensure_object(dict)
    if "provider" not in obj:
        try:
            config = Config.from_env()
        except ConfigurationError as e:
            raise click.ClickException(str(e)) from e

        setup_logging(
            structured=config.enable_audit_logging,
            level=logging.DEBUG if obj.get("verbose") else logging.INFO,
        )

        try:
            provider = configure_provider(config)
        except CredentialError as e:
            raise click.ClickException(str(e)) from e
        obj["provider"] = provider
        ctx.call_on_close(provider.close)
    return obj["provider"]


def _state_path(provider: Provider, name: str) -> Path:
    return provider.config.state_dir / f"network.{name}.json"


def _load_state(provider: Provider, name: str) -> tuple[Any, dict[str, Any] | None]:
    try:
        document = load_state_document(_state_path(provider, name))
        if document is None:
            return None, None
        return network_from_persisted(document), document
    except (SpecLoadError, StateProjectionError) as e:
        raise click.ClickException(f"Unreadable state for '{name}': {e}") from e


def _persist(provider: Provider, name: str, result: ReconcileResult, previous: Any) -> None:
    path = _state_path(provider, name)
    if result.state is None:
        remove_state_document(path)
    else:
        write_state_document(path, network_to_persisted(result.state, previous))


def _report(ctx: click.Context, result: ReconcileResult) -> None:
    """Print diagnostics and fail the invocation on errors."""
    for diagnostic in result.diagnostics:
        color = "red" if diagnostic.severity == Severity.ERROR else "yellow"
        click.secho(f"{diagnostic.severity.value}: {diagnostic.summary}", fg=color, err=True)
        if diagnostic.detail:
            click.echo(f"  {diagnostic.detail}", err=True)
    if not result.success:
        ctx.exit(EXIT_DIAGNOSTIC_ERROR)


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, sort_keys=True))


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version=VERSION, prog_name="merakictl")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Meraki connector CLI (merakictl).

    Reconciles Dashboard networks with YAML definitions.

    \b
    Quick Start:
        export MERAKI_API_KEY=...
        merakictl orgs list
        merakictl network apply branch.yaml
    """
    ctx.ensure_object(dict)["verbose"] = verbose


# =============================================================================
# Organization Commands
# =============================================================================


@cli.group()
def orgs() -> None:
    """Read-only organization lookups."""
    pass


@orgs.command("list")
@click.pass_context
def orgs_list(ctx: click.Context) -> None:
    """List the ids of every visible organization."""
    provider = _provider(ctx)
    try:
        ids = provider.organizations.read()
    except GatewayError as e:
        raise click.ClickException(f"Failed to get organizations: {e}") from e
    _echo_json(organization_ids_to_persisted(ids))


@orgs.command("show")
@click.argument("org_id")
@click.pass_context
def orgs_show(ctx: click.Context, org_id: str) -> None:
    """Show one organization."""
    provider = _provider(ctx)
    try:
        organization = provider.organization.read(org_id)
    except GatewayError as e:
        raise click.ClickException(f"Failed to get organization: {e}") from e
    _echo_json(organization_to_persisted(organization))


# =============================================================================
# Network Commands
# =============================================================================


@cli.group()
def network() -> None:
    """Declarative network management."""
    pass


@network.command("plan")
@click.argument("spec_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def network_plan(ctx: click.Context, spec_file: Path) -> None:
    """Show the operation apply would perform, without calling the API."""
    try:
        name, spec = load_network_spec(spec_file)
    except SpecLoadError as e:
        raise click.ClickException(str(e)) from e

    provider = _provider(ctx)
    state, _ = _load_state(provider, name)
    try:
        operation, payload = provider.network_reconciler(name).decide(spec, state)
    except ConfigurationViolation as e:
        raise click.ClickException(f"Invalid configuration change: {e}") from e

    _echo_json({"name": name, "operation": operation.value, "payload": payload})


@network.command("apply")
@click.argument("spec_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--no-refresh", is_flag=True, help="Skip re-reading remote state first")
@click.pass_context
def network_apply(ctx: click.Context, spec_file: Path, no_refresh: bool) -> None:
    """Converge a network with its definition."""
    try:
        name, spec = load_network_spec(spec_file)
    except SpecLoadError as e:
        raise click.ClickException(str(e)) from e

    provider = _provider(ctx)
    reconciler = provider.network_reconciler(name)
    state, document = _load_state(provider, name)

    if state is not None and not no_refresh:
        refreshed = reconciler.refresh(state, drop_missing=True)
        _persist(provider, name, refreshed, document)
        _report(ctx, refreshed)
        state = refreshed.state

    result = reconciler.reconcile(spec, state)
    _persist(provider, name, result, document)
    click.echo(f"{name}: {result.operation.value} ({result.resource_id or 'absent'})")
    _report(ctx, result)


@network.command("refresh")
@click.argument("name")
@click.option("--drop-missing", is_flag=True, help="Forget networks deleted out of band")
@click.pass_context
def network_refresh(ctx: click.Context, name: str, drop_missing: bool) -> None:
    """Re-read a managed network into state."""
    provider = _provider(ctx)
    state, document = _load_state(provider, name)
    if state is None:
        raise click.ClickException(f"No state for '{name}'")

    result = provider.network_reconciler(name).refresh(state, drop_missing=drop_missing)
    _persist(provider, name, result, document)
    _report(ctx, result)


@network.command("import")
@click.argument("name")
@click.argument("network_id")
@click.option("--org-id", default="", help="Owning organization, for the scoped read")
@click.pass_context
def network_import(ctx: click.Context, name: str, network_id: str, org_id: str) -> None:
    """Adopt an existing network by identifier."""
    try:
        validate_resource_name(name)
    except SpecLoadError as e:
        raise click.ClickException(str(e)) from e

    provider = _provider(ctx)
    state, document = _load_state(provider, name)
    if state is not None:
        raise click.ClickException(f"'{name}' is already managed as {state.id}")

    result = provider.network_reconciler(name).import_resource(network_id, org_id=org_id)
    _persist(provider, name, result, document)
    _report(ctx, result)
    click.echo(f"{name}: imported {network_id}")


@network.command("show")
@click.argument("name")
@click.pass_context
def network_show(ctx: click.Context, name: str) -> None:
    """Print the persisted state of a network."""
    provider = _provider(ctx)
    state, document = _load_state(provider, name)
    if state is None:
        raise click.ClickException(f"No state for '{name}'")
    _echo_json(network_to_persisted(state, document))


@network.command("destroy")
@click.argument("name")
@click.confirmation_option(prompt="Delete the remote network?")
@click.pass_context
def network_destroy(ctx: click.Context, name: str) -> None:
    """Delete a managed network."""
    provider = _provider(ctx)
    state, document = _load_state(provider, name)
    if state is None:
        raise click.ClickException(f"No state for '{name}'")

    result = provider.network_reconciler(name).reconcile(None, state)
    _persist(provider, name, result, document)
    _report(ctx, result)
    if result.operation == Operation.DELETE:
        click.echo(f"{name}: deleted {state.id}")


if __name__ == "__main__":
    cli()
