# run.py
# Entry point. Config and wiring only; no orchestration logic lives here.
#
#   cdp-deploy plan   --config deploy.yml --principal 0x... --nonce 0
#   cdp-deploy deploy --config deploy.yml --output deployments/testnet.json

import sys
from pathlib import Path

import click
from eth_utils import is_address, to_checksum_address

from cdp_deployer import display
from cdp_deployer.config import DeploymentConfig
from cdp_deployer.deployer import Deployer
from cdp_deployer.errors import ConfigError, DeploymentError, LedgerQueryError
from cdp_deployer.graph import resolve_batch
from cdp_deployer.ledger import ArtifactStore, Web3LedgerClient
from cdp_deployer.models import DeploymentReport
from cdp_deployer.predictor import SequenceWindow
from cdp_deployer.protocol import build_graph, build_wiring


def _client(config: DeploymentConfig) -> Web3LedgerClient:
    if not config.rpc_url or config.private_key is None:
        raise ConfigError("CDP_RPC_URL and CDP_PRIVATE_KEY must be set to reach the ledger.")
    return Web3LedgerClient(
        rpc_url=config.rpc_url,
        private_key=config.private_key.get_secret_value(),
        artifacts=ArtifactStore(config.artifacts_dir),
        timeout=config.confirmation_timeout,
    )


def _write_report(report: DeploymentReport, output: Path | None) -> None:
    if output is None:
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(report.model_dump_json(indent=2), encoding="utf-8")
    display.report_written(str(output))


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help="YAML deployment parameters (defaults reproduce the testnet deployment).",
)
@click.option(
    "--env-file",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help="Alternate .env file for CDP_RPC_URL / CDP_PRIVATE_KEY.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, env_file: Path | None) -> None:
    """cdp-deploy - Deterministic deployment of the CDP protocol."""
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = DeploymentConfig.load(config_path, env_file)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command()
@click.option("--principal", default=None, help="Deploying address. Defaults to the configured key's address.")
@click.option("--nonce", type=int, default=None, help="Starting nonce. Defaults to the live nonce.")
@click.pass_context
def plan(ctx: click.Context, principal: str | None, nonce: int | None) -> None:
    """Print every predicted address without submitting anything."""
    config: DeploymentConfig = ctx.obj["config"]

    try:
        if principal is not None:
            if not is_address(principal):
                raise ConfigError(f"--principal {principal!r} is not an address.")
            principal = to_checksum_address(principal)
        if principal is None or nonce is None:
            client = _client(config)
            principal = principal or client.principal
            if nonce is None:
                try:
                    nonce = client.get_sequence_number(principal)
                except Exception as exc:
                    raise LedgerQueryError("get_sequence_number", exc) from exc
        graph = build_graph(config, principal)
    except DeploymentError as exc:
        raise click.ClickException(str(exc)) from exc

    start = nonce
    for batch in graph.batches:
        window = SequenceWindow(principal=principal, start=start, size=len(batch.descriptors))
        resolve_batch(batch, window, graph)
        start += window.size

    display.plan_table(graph, nonce)


@cli.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the address map and wiring log as JSON.",
)
@click.pass_context
def deploy(ctx: click.Context, output: Path | None) -> None:
    """Deploy and wire the whole protocol. Exits 1 at the first failure."""
    config: DeploymentConfig = ctx.obj["config"]

    try:
        client = _client(config)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if config.layer_zero_endpoint is None:
        display.deferred_integration("LayerZero endpoint")

    deployer = Deployer(client, principal=client.principal, network=config.network)
    try:
        graph = build_graph(config, deployer.principal)
        wiring = build_wiring(config, graph)
        report = deployer.run(graph, wiring)
    except DeploymentError as exc:
        display.halt(str(exc))
        partial = deployer.report()
        display.address_map(partial.addresses, title="PARTIAL ADDRESS MAP")
        _write_report(partial, output)
        sys.exit(1)

    _write_report(report, output)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
