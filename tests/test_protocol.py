from cdp_deployer.config import DeploymentConfig
from cdp_deployer.models import Ref
from cdp_deployer.predictor import ZERO_ADDRESS
from cdp_deployer.protocol import AGGREGATOR, COLLATERAL, build_graph, build_wiring

EXISTING_TOKEN = "0x1111111111111111111111111111111111111111"
EXISTING_FEED = "0x2222222222222222222222222222222222222222"


def test_default_graph_batches(config, principal):
    graph = build_graph(config, principal)

    assert [b.name for b in graph.batches] == ["mocks", "core", "support", "system"]
    assert graph.batches[0].names() == [COLLATERAL, AGGREGATOR]
    assert graph.batches[1].names() == ["BabelCore", "PriceFeed"]
    assert graph.batches[2].names() == ["FeeReceiver", "InterimAdmin", "GasPool"]
    assert graph.batches[3].names() == [
        "Factory",
        "LiquidationManager",
        "DebtToken",
        "BorrowerOperations",
        "StabilityPool",
        "TroveManager",
        "SortedTroves",
        "TokenLocker",
        "IncentiveVoting",
        "BabelToken",
        "BabelVault",
    ]


def test_core_pair_references_each_other(config, principal):
    graph = build_graph(config, principal)
    core, feed = graph["BabelCore"], graph["PriceFeed"]

    assert core.args == [principal, principal, Ref("PriceFeed"), principal]
    assert feed.args == [Ref("BabelCore"), Ref(AGGREGATOR)]


def test_existing_collateral_and_aggregator_skip_mocks(principal):
    config = DeploymentConfig(collateral=EXISTING_TOKEN, aggregator=EXISTING_FEED)
    graph = build_graph(config, principal)

    assert [b.name for b in graph.batches] == ["core", "support", "system"]
    assert graph["PriceFeed"].args == [Ref("BabelCore"), EXISTING_FEED]

    wiring = build_wiring(config, graph)
    assert wiring.steps[1].args[:2] == [EXISTING_TOKEN, EXISTING_FEED]
    assert wiring.steps[2].args[0] == EXISTING_TOKEN


def test_missing_layer_zero_endpoint_passes_zero_address(config, principal):
    graph = build_graph(config, principal)
    assert graph["DebtToken"].args[5] == ZERO_ADDRESS
    assert graph["BabelToken"].args[1] == ZERO_ADDRESS


def test_configured_layer_zero_endpoint_is_used(principal):
    endpoint = "0x3333333333333333333333333333333333333333"
    graph = build_graph(DeploymentConfig(layer_zero_endpoint=endpoint), principal)
    assert graph["DebtToken"].args[5] == endpoint
    assert graph["BabelToken"].args[1] == endpoint


def test_role_overrides(principal):
    manager = "0x4444444444444444444444444444444444444444"
    graph = build_graph(DeploymentConfig(locker_manager=manager, guardian=manager), principal)
    assert graph["TokenLocker"].args[3] == manager
    assert graph["BabelCore"].args[1] == manager
    assert graph["BabelCore"].args[0] == principal


def test_wiring_plan_shape(config, principal):
    graph = build_graph(config, principal)
    steps = build_wiring(config, graph).steps

    assert [(s.target.name, s.method, s.kind) for s in steps] == [
        ("BabelCore", "commitTransferOwnership", "transact"),
        ("PriceFeed", "setOracle", "transact"),
        ("Factory", "deployNewInstance", "transact"),
        ("Factory", "troveManagers", "read"),
        ("BabelVault", "registerReceiver", "transact"),
    ]
    assert steps[1].args[2:] == [80000, "0x00000000", 18, False]
    assert steps[4].args == [Ref("CollateralTroveManager"), 2]


def test_risk_struct_field_order(config):
    assert list(config.risk.as_struct()) == [
        "minuteDecayFactor",
        "redemptionFeeFloor",
        "maxRedemptionFee",
        "borrowingFeeFloor",
        "maxBorrowingFee",
        "interestRateInBps",
        "maxDebt",
        "MCR",
    ]
    assert config.risk.as_struct()["MCR"] == 2 * 10**18
    assert config.risk.as_struct()["maxDebt"] == 1_000_000 * 10**18
