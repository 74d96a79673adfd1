# protocol.py
# The hand-authored graph and wiring plan for the CDP protocol.
#
# Batch order is submission order is nonce order. Within a batch, the
# descriptor order below is exactly the order creations are sent, so do not
# reorder entries without re-checking every Ref.

from cdp_deployer.config import DeploymentConfig
from cdp_deployer.graph import DeploymentGraph, WiringPlan
from cdp_deployer.models import Batch, Ref, ResourceDescriptor, WiringStep
from cdp_deployer.predictor import ZERO_ADDRESS

COLLATERAL = "CollateralToken"
AGGREGATOR = "PriceAggregator"
SPAWNED_TROVE_MANAGER = "CollateralTroveManager"


def _addr(value: str | None, principal: str) -> str:
    return value or principal


def build_graph(config: DeploymentConfig, principal: str) -> DeploymentGraph:
    """Batches: [mocks], core, support, system."""
    owner = _addr(config.owner, principal)
    guardian = _addr(config.guardian, principal)
    fee_receiver = _addr(config.fee_receiver, principal)
    locker_manager = _addr(config.locker_manager, principal)
    lz_endpoint = config.layer_zero_endpoint or ZERO_ADDRESS
    gas_comp = config.gas_compensation

    batches: list[Batch] = []

    mocks: list[ResourceDescriptor] = []
    if config.collateral is None:
        mocks.append(ResourceDescriptor(name=COLLATERAL, contract="StakedBTC"))
    if config.aggregator is None:
        mocks.append(ResourceDescriptor(name=AGGREGATOR, contract="MockOracle"))
    if mocks:
        batches.append(Batch(name="mocks", descriptors=mocks))

    aggregator = Ref(AGGREGATOR) if config.aggregator is None else config.aggregator

    # BabelCore <-> PriceFeed
    batches.append(
        Batch(
            name="core",
            descriptors=[
                ResourceDescriptor(
                    name="BabelCore",
                    contract="BabelCore",
                    args=[owner, guardian, Ref("PriceFeed"), fee_receiver],
                ),
                ResourceDescriptor(
                    name="PriceFeed",
                    contract="PriceFeed",
                    args=[Ref("BabelCore"), aggregator],
                ),
            ],
        )
    )

    batches.append(
        Batch(
            name="support",
            descriptors=[
                ResourceDescriptor(name="FeeReceiver", contract="FeeReceiver", args=[Ref("BabelCore")]),
                ResourceDescriptor(name="InterimAdmin", contract="InterimAdmin", args=[Ref("BabelCore")]),
                ResourceDescriptor(name="GasPool", contract="GasPool"),
            ],
        )
    )

    batches.append(
        Batch(
            name="system",
            descriptors=[
                ResourceDescriptor(
                    name="Factory",
                    contract="Factory",
                    args=[
                        Ref("BabelCore"),
                        Ref("DebtToken"),
                        Ref("StabilityPool"),
                        Ref("BorrowerOperations"),
                        Ref("SortedTroves"),
                        Ref("TroveManager"),
                        Ref("LiquidationManager"),
                    ],
                ),
                ResourceDescriptor(
                    name="LiquidationManager",
                    contract="LiquidationManager",
                    args=[Ref("StabilityPool"), Ref("BorrowerOperations"), Ref("Factory"), gas_comp],
                ),
                ResourceDescriptor(
                    name="DebtToken",
                    contract="DebtToken",
                    args=[
                        config.debt_token_name,
                        config.debt_token_symbol,
                        Ref("StabilityPool"),
                        Ref("BorrowerOperations"),
                        Ref("BabelCore"),
                        lz_endpoint,
                        Ref("Factory"),
                        Ref("GasPool"),
                        gas_comp,
                    ],
                ),
                ResourceDescriptor(
                    name="BorrowerOperations",
                    contract="BorrowerOperations",
                    args=[Ref("BabelCore"), Ref("DebtToken"), Ref("Factory"), config.min_net_debt, gas_comp],
                ),
                ResourceDescriptor(
                    name="StabilityPool",
                    contract="StabilityPool",
                    args=[
                        Ref("BabelCore"),
                        Ref("DebtToken"),
                        Ref("BabelVault"),
                        Ref("Factory"),
                        Ref("LiquidationManager"),
                    ],
                ),
                # Implementation contract; the factory clones it per collateral.
                ResourceDescriptor(
                    name="TroveManager",
                    contract="TroveManager",
                    args=[
                        Ref("BabelCore"),
                        Ref("GasPool"),
                        Ref("DebtToken"),
                        Ref("BorrowerOperations"),
                        Ref("BabelVault"),
                        Ref("LiquidationManager"),
                        gas_comp,
                    ],
                ),
                ResourceDescriptor(name="SortedTroves", contract="SortedTroves"),
                ResourceDescriptor(
                    name="TokenLocker",
                    contract="TokenLocker",
                    args=[
                        Ref("BabelCore"),
                        Ref("BabelToken"),
                        Ref("IncentiveVoting"),
                        locker_manager,
                        config.lock_to_token_ratio,
                    ],
                ),
                ResourceDescriptor(
                    name="IncentiveVoting",
                    contract="IncentiveVoting",
                    args=[Ref("BabelCore"), Ref("TokenLocker"), Ref("BabelVault")],
                ),
                ResourceDescriptor(
                    name="BabelToken",
                    contract="BabelToken",
                    args=[Ref("BabelVault"), lz_endpoint, Ref("TokenLocker")],
                ),
                ResourceDescriptor(
                    name="BabelVault",
                    contract="BabelVault",
                    args=[
                        Ref("BabelCore"),
                        Ref("BabelToken"),
                        Ref("TokenLocker"),
                        Ref("IncentiveVoting"),
                        Ref("StabilityPool"),
                        Ref("LiquidationManager"),
                    ],
                ),
            ],
        )
    )

    return DeploymentGraph(batches)


def build_wiring(config: DeploymentConfig, graph: DeploymentGraph) -> WiringPlan:
    """Post-deployment calls, in the order they must be confirmed."""
    collateral = Ref(COLLATERAL) if config.collateral is None else config.collateral
    aggregator = Ref(AGGREGATOR) if config.aggregator is None else config.aggregator
    oracle = config.oracle

    steps = [
        WiringStep(
            target=Ref("BabelCore"),
            method="commitTransferOwnership",
            args=[Ref("InterimAdmin")],
            description="Hand core ownership to InterimAdmin",
        ),
        WiringStep(
            target=Ref("PriceFeed"),
            method="setOracle",
            args=[
                collateral,
                aggregator,
                oracle.heartbeat,
                oracle.share_price_signature,
                oracle.share_price_decimals,
                oracle.is_eth_indexed,
            ],
            description="Register the collateral price source",
        ),
        WiringStep(
            target=Ref("Factory"),
            method="deployNewInstance",
            args=[collateral, Ref("PriceFeed"), ZERO_ADDRESS, ZERO_ADDRESS, config.risk.as_struct()],
            description="Spawn the collateral trove manager",
        ),
        WiringStep(
            target=Ref("Factory"),
            method="troveManagers",
            args=[0],
            description="Read back the spawned trove manager",
            kind="read",
            bind=SPAWNED_TROVE_MANAGER,
        ),
        WiringStep(
            target=Ref("BabelVault"),
            method="registerReceiver",
            args=[Ref(SPAWNED_TROVE_MANAGER), config.receiver_type_id],
            description="Register the trove manager with the vault",
        ),
    ]
    return WiringPlan(steps, graph)
