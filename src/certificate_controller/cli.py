"""App Service Certificate controller CLI (certctl).

Drives the controller the way a host engine would: the retained identity
is passed in with --id and printed back as part of the JSON state.

Usage:
    certctl validate cert.yaml              # Local checks, no Azure calls
    certctl diff current.yaml desired.yaml  # Fields that force replacement
    certctl apply cert.yaml [--id ID]       # Create or update
    certctl read ID                         # Refresh state
    certctl import ID                       # Validate and adopt existing
    certctl delete ID                       # Delete
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import click

from .clients import build_clients
from .config import Config
from .controller import CertificateController
from .errors import CertificateError
from .models import (
    CertificateSpec,
    CertificateState,
    InlinePfx,
    VaultReference,
    validate_certificate_source,
)
from .security import SecretlessViolationError
from .spec_loader import SpecLoadError, load_spec

T = TypeVar("T")

SPEC_PATH = click.Path(exists=True, dir_okay=False, path_type=Path)


def make_controller() -> CertificateController:
    """Build a controller with fresh clients from environment configuration."""
    config = Config.from_env()
    return CertificateController(
        build_clients(config),
        timeouts=config.timeouts,
        enable_audit_logging=config.enable_audit_logging,
    )


def run_operation(coro: Coroutine[Any, Any, T]) -> T:
    """Run a controller coroutine, turning controller errors into CLI errors."""
    try:
        return asyncio.run(coro)
    except (CertificateError, SecretlessViolationError) as e:
        raise click.ClickException(f"{type(e).__name__}: {e}") from e


def load_spec_or_fail(spec_file: Path) -> CertificateSpec:
    try:
        return load_spec(spec_file)
    except SpecLoadError as e:
        raise click.ClickException(str(e)) from e


def echo_state(state: CertificateState) -> None:
    click.echo(json.dumps(state.to_dict(), indent=2, sort_keys=True))


def _controller_or_fail() -> CertificateController:
    try:
        return make_controller()
    except (CertificateError, SecretlessViolationError) as e:
        raise click.ClickException(f"{type(e).__name__}: {e}") from e


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version="0.1.0", prog_name="certctl")
def cli() -> None:
    """App Service Certificate controller (certctl).

    \b
    Azure access uses a managed identity; set AZURE_SUBSCRIPTION_ID
    and optionally AZURE_CLIENT_ID.
    """
    pass


# =============================================================================
# Local Commands
# =============================================================================


@cli.command()
@click.argument("spec_file", type=SPEC_PATH)
def validate(spec_file: Path) -> None:
    """Validate a certificate spec without calling Azure."""
    spec = load_spec_or_fail(spec_file)

    try:
        source = validate_certificate_source(spec)
        match source:
            case InlinePfx():
                size = len(source.pfx_bytes)
                detail = f"inline PFX ({size} bytes)"
            case VaultReference():
                reference = source.reference
                detail = f"Key Vault {reference.vault_base_url} secret {reference.name!r}"
    except CertificateError as e:
        raise click.ClickException(str(e)) from e

    click.secho(f"✓ {spec.name} ({spec.resource_group_name}): {detail}", fg="green")


@cli.command()
@click.argument("current_file", type=SPEC_PATH)
@click.argument("desired_file", type=SPEC_PATH)
def diff(current_file: Path, desired_file: Path) -> None:
    """Show which changes force the certificate to be replaced."""
    current = load_spec_or_fail(current_file)
    desired = load_spec_or_fail(desired_file)

    fields = current.replacement_fields(desired)
    if not fields:
        click.echo("No replacement required; changes apply in place.")
        return

    click.secho("Replacement required. Changed fields:", fg="yellow")
    for field_name in fields:
        click.echo(f"  - {field_name}")


# =============================================================================
# Azure Commands
# =============================================================================


@cli.command()
@click.argument("spec_file", type=SPEC_PATH)
@click.option("--id", "resource_id", default="", help="Retained identity (omit to create)")
def apply(spec_file: Path, resource_id: str) -> None:
    """Create or update a certificate and print its state."""
    spec = load_spec_or_fail(spec_file)
    controller = _controller_or_fail()
    state = run_operation(controller.create_or_update(spec, resource_id=resource_id))
    echo_state(state)


@cli.command()
@click.argument("resource_id")
def read(resource_id: str) -> None:
    """Refresh a certificate's state. An empty id means it is gone."""
    controller = _controller_or_fail()
    state = run_operation(controller.read(resource_id))
    if not state.exists:
        click.secho("Certificate no longer exists; remove it from state.", fg="yellow", err=True)
    echo_state(state)


@cli.command("import")
@click.argument("resource_id")
def import_(resource_id: str) -> None:
    """Import an existing certificate by resource ID."""
    controller = _controller_or_fail()
    state = run_operation(controller.import_resource(resource_id))
    if not state.exists:
        raise click.ClickException(f"Cannot import non-existent certificate {resource_id}")
    echo_state(state)


@cli.command()
@click.argument("resource_id")
def delete(resource_id: str) -> None:
    """Delete a certificate."""
    controller = _controller_or_fail()
    run_operation(controller.delete(resource_id))
    click.secho(f"✓ Deleted {resource_id}", fg="green")
