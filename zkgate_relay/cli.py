"""
Command-Line Interface for zkgate-relay

Run the HTTP server, inspect toolchain and artifact status, generate and
verify proof bundles, and submit relay requests from the terminal.
"""

import json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from zkgate_relay import __version__
from zkgate_relay.config import load_settings
from zkgate_relay.errors import ZkGateError
from zkgate_relay.log import setup_logging
from zkgate_relay.proving.bundle import ProofBundle, decode_bundle, encode_bundle
from zkgate_relay.proving.circuits import CIRCUITS
from zkgate_relay.runtime import build_services

console = Console()


def _fail(message: str) -> None:
    click.echo(click.style(f"✗ {message}", fg="red"), err=True)
    sys.exit(1)


def _services(ctx: click.Context):
    try:
        return build_services(ctx.obj["settings"])
    except ZkGateError as e:
        _fail(e.message)


def _read_json(path: str) -> dict:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        _fail(f"Unable to read {path}: {e}")
    if not isinstance(data, dict):
        _fail(f"{path} must contain a JSON object")
    return data


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="YAML settings file (default: $ZKGATE_CONFIG)",
)
@click.option("--log-level", type=str, help="Override LOG_LEVEL")
@click.pass_context
def main(ctx, config_path, log_level):
    """
    zkgate-relay - private eligibility proofs and gasless relay

    Drives the nargo/sunspot toolchain to produce proofs and submits gated
    swap instructions through a relay authority.
    """
    try:
        settings = load_settings(config_path)
    except ZkGateError as e:
        _fail(f"{e.message}" + (f" ({e.details})" if e.details else ""))
    setup_logging(log_level or settings.log_level)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@main.command()
@click.option("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
@click.option("--port", default=3000, type=int, help="Port (default: 3000)")
@click.option("--debug", is_flag=True, help="Enable Flask debug mode")
@click.pass_context
def serve(ctx, host, port, debug):
    """Run the proof and relayer HTTP server."""
    from zkgate_relay.server import create_app

    try:
        app = create_app(ctx.obj["settings"])
    except ZkGateError as e:
        _fail(e.message)
    click.echo(click.style(f"✓ Serving on http://{host}:{port}", fg="green"))
    app.run(host=host, port=port, debug=debug, threaded=True)


@main.command()
@click.pass_context
def status(ctx):
    """Show toolchain availability and per-circuit artifacts."""
    services = _services(ctx)
    pipeline = services.proofs.pipeline

    tools = Table(title="Toolchain")
    tools.add_column("Tool")
    tools.add_column("Available")
    for name, available in pipeline.tool_status().to_dict().items():
        tools.add_row(name, "[green]yes[/green]" if available else "[red]no[/red]")
    console.print(tools)

    artifacts = Table(title=f"Artifacts ({services.settings.circuit_root})")
    artifacts.add_column("Circuit")
    columns = ["program", "witness", "constraints", "proving_key", "verifying_key"]
    for column in columns:
        artifacts.add_column(column)
    for name in CIRCUITS:
        present = pipeline.store.describe(pipeline.config_for(name))
        artifacts.add_row(name, *("✓" if present[c] else "-" for c in columns))
    console.print(artifacts)


@main.command()
@click.argument("circuit", type=click.Choice(sorted(CIRCUITS)))
@click.option(
    "--inputs",
    "inputs_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file with the circuit's request parameters",
)
@click.option(
    "--out",
    "out_path",
    type=click.Path(dir_okay=False),
    help="Output bundle path (default: <circuit>.proof.cbor)",
)
@click.pass_context
def prove(ctx, circuit, inputs_path, out_path):
    """Generate a proof and write it as a CBOR bundle."""
    params = _read_json(inputs_path)
    services = _services(ctx)
    try:
        result = services.proofs.prove(circuit, params)
        blob = encode_bundle(ProofBundle.from_result(result))
    except ZkGateError as e:
        _fail(f"{e.code}: {e.message}" + (f" ({e.details})" if e.details else ""))

    output = Path(out_path or f"{circuit}.proof.cbor")
    output.write_bytes(blob)
    click.echo(click.style(f"✓ Proof generated for {circuit}", fg="green"))
    click.echo(f"  • Proof: {len(result.proof)} bytes")
    click.echo(f"  • Public inputs: {len(result.public_inputs)} bytes")
    click.echo(f"  • Bundle saved to: {output}")


@main.command()
@click.argument("bundle_path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def verify(ctx, bundle_path):
    """Verify a CBOR proof bundle against its circuit's verifying key."""
    services = _services(ctx)
    try:
        bundle = decode_bundle(Path(bundle_path).read_bytes())
        verified = services.proofs.verify(
            bundle.circuit, bundle.proof, bundle.public_inputs
        )
    except ZkGateError as e:
        _fail(f"{e.code}: {e.message}" + (f" ({e.details})" if e.details else ""))

    if not verified:
        _fail(f"Proof rejected for {bundle.circuit}")
    click.echo(click.style(f"✓ Proof verified for {bundle.circuit}", fg="green"))


@main.command()
@click.argument("request_path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def relay(ctx, request_path):
    """Submit a relay request (same JSON body as POST /api/relayer)."""
    body = _read_json(request_path)
    services = _services(ctx)
    status_code, payload = services.relay.submit(body)
    if status_code != 200:
        console.print_json(data=payload)
        _fail(f"Relay failed ({status_code}): {payload.get('error')}")
    click.echo(click.style(f"✓ Transaction confirmed: {payload['signature']}", fg="green"))


if __name__ == "__main__":
    main()
