import json

import pytest

from cdp_deployer.config import DeploymentConfig, OracleSettings
from cdp_deployer.deployer import Deployer
from cdp_deployer.errors import WiringError
from cdp_deployer.graph import WiringPlan
from cdp_deployer.models import Ref, WiringStep
from cdp_deployer.predictor import ZERO_ADDRESS, predict_address
from cdp_deployer.protocol import SPAWNED_TROVE_MANAGER, build_graph, build_wiring


def _deployed(ledger, config, principal):
    graph = build_graph(config, principal)
    deployer = Deployer(ledger, principal, network="test")
    deployer.deploy_graph(graph)
    return deployer, graph


# ---------------------------------------------------------------------------
# Full wiring
# ---------------------------------------------------------------------------


def test_full_run_wires_in_required_order(ledger, config, principal):
    graph = build_graph(config, principal)
    report = Deployer(ledger, principal, network="test").run(graph, build_wiring(config, graph))

    assert [c["method"] for c in ledger.calls] == [
        "commitTransferOwnership",
        "setOracle",
        "deployNewInstance",
        "registerReceiver",
    ]
    assert [r["method"] for r in ledger.reads] == ["troveManagers"]
    assert [r.index for r in report.wiring] == [1, 2, 3, 4, 5]
    assert report.completed is True
    assert report.chain_id == 31337


def test_ownership_handed_to_interim_admin(ledger, config, principal):
    deployer, graph = _deployed(ledger, config, principal)
    deployer.wire(build_wiring(config, graph))

    handoff = ledger.calls[0]
    assert handoff["target"] == graph["BabelCore"].realized
    assert handoff["contract"] == "BabelCore"
    assert handoff["args"] == [graph["InterimAdmin"].realized]


def test_set_oracle_forwards_staleness_and_selector_unchanged(ledger, principal):
    config = DeploymentConfig(oracle=OracleSettings(heartbeat=80000, share_price_signature="0x00000000"))
    deployer, graph = _deployed(ledger, config, principal)
    deployer.wire(build_wiring(config, graph))

    set_oracle = ledger.calls[1]
    collateral, aggregator, heartbeat, selector, decimals, eth_indexed = set_oracle["args"]
    assert set_oracle["target"] == graph["PriceFeed"].realized
    assert collateral == graph["CollateralToken"].realized
    assert aggregator == graph["PriceAggregator"].realized
    assert heartbeat == 80000 and type(heartbeat) is int
    assert selector == "0x00000000"
    assert (decimals, eth_indexed) == (18, False)


def test_factory_spawn_then_vault_registration(ledger, config, principal):
    deployer, graph = _deployed(ledger, config, principal)
    records = deployer.wire(build_wiring(config, graph))

    factory = graph["Factory"].realized
    spawned = predict_address(factory, 1)

    spawn_call = ledger.calls[2]
    assert spawn_call["args"][:4] == [
        graph["CollateralToken"].realized,
        graph["PriceFeed"].realized,
        ZERO_ADDRESS,
        ZERO_ADDRESS,
    ]
    assert spawn_call["args"][4] == config.risk.as_struct()

    assert ledger.reads[0]["args"] == [0]
    assert records[3].result == spawned
    assert records[3].tx_hash is None

    register = ledger.calls[3]
    assert register["target"] == graph["BabelVault"].realized
    assert register["args"] == [spawned, 2]

    assert deployer.report().addresses[SPAWNED_TROVE_MANAGER] == spawned


def test_registry_read_back_is_idempotent(ledger, config, principal):
    deployer, graph = _deployed(ledger, config, principal)
    spawn = build_wiring(config, graph).steps[2]
    plan = WiringPlan(
        [
            spawn,
            WiringStep(target=Ref("Factory"), method="troveManagers", args=[0], description="first", kind="read", bind="First"),
            WiringStep(target=Ref("Factory"), method="troveManagers", args=[0], description="again", kind="read", bind="Second"),
        ],
        graph,
    )

    records = deployer.wire(plan)

    assert records[1].result == records[2].result
    assert len(ledger.registries[graph["Factory"].realized.lower()]) == 1


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


def test_wiring_failure_reports_step_index(make_ledger, config, principal):
    ledger = make_ledger(fail_on_method="deployNewInstance")
    deployer, graph = _deployed(ledger, config, principal)

    with pytest.raises(WiringError) as exc_info:
        deployer.wire(build_wiring(config, graph))

    err = exc_info.value
    assert (err.index, err.method) == (3, "deployNewInstance")
    assert [c["method"] for c in ledger.calls] == ["commitTransferOwnership", "setOracle"]
    assert ledger.reads == []
    assert [r.index for r in deployer.report().wiring] == [1, 2]


def test_empty_registry_read_fails_the_step(ledger, config, principal):
    deployer, graph = _deployed(ledger, config, principal)
    plan = WiringPlan(
        [WiringStep(target=Ref("Factory"), method="troveManagers", args=[0], description="read", kind="read", bind="TM")],
        graph,
    )
    with pytest.raises(WiringError) as exc_info:
        deployer.wire(plan)
    assert exc_info.value.index == 1


def test_report_round_trips_through_json(ledger, config, principal):
    graph = build_graph(config, principal)
    report = Deployer(ledger, principal, network="test").run(graph, build_wiring(config, graph))

    data = json.loads(report.model_dump_json())
    assert data["principal"] == principal
    assert data["addresses"]["BabelVault"] == graph["BabelVault"].realized
    assert list(data["addresses"])[:2] == ["CollateralToken", "PriceAggregator"]
    assert data["wiring"][4]["method"] == "registerReceiver"
