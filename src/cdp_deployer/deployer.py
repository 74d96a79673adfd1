# deployer.py
# Deployment orchestrator.
#
# The Deployer owns all control flow and state for a run. The ledger client
# is a passive collaborator: it submits, waits and returns receipts.
#
# Control flow:
#   per batch: snapshot nonce → predict → substitute → create + verify each
#   then: wiring steps, strictly in order, each confirmed before the next
#
# All terminal output is delegated to display.py. No formatting here.

from typing import Any

from eth_utils import to_checksum_address

from cdp_deployer import display
from cdp_deployer.errors import (
    DependencyNotReadyError,
    GraphDefinitionError,
    LedgerQueryError,
    PredictionMismatchError,
    SubmissionError,
    WiringError,
)
from cdp_deployer.graph import DeploymentGraph, WiringPlan, resolve_batch, substitute
from cdp_deployer.ledger import LedgerClient
from cdp_deployer.models import Batch, DeploymentReport, ResourceDescriptor, WiringRecord
from cdp_deployer.predictor import SequenceWindow, same_address


class Deployer:
    """
    Sequential deploy-and-wire driver for one principal.

    Example:
        deployer = Deployer(ledger, principal=ledger.principal, network="testnet")
        report = deployer.run(graph, wiring)

    Nothing is retried. On any failure the exception propagates and the
    realized prefix stays visible through report().
    """

    def __init__(self, ledger: LedgerClient, principal: str, network: str | None = None) -> None:
        self._ledger = ledger
        self._principal = to_checksum_address(principal)
        self._network = network
        self._chain_id: int | None = None
        self._graph: DeploymentGraph | None = None
        self._bound: dict[str, Any] = {}
        self._records: list[WiringRecord] = []

    @property
    def principal(self) -> str:
        return self._principal

    # ------------------------------------------------------------------
    # Deployment driver
    # ------------------------------------------------------------------

    def deploy(self, descriptor: ResourceDescriptor, window: SequenceWindow, offset: int, stage: str) -> str:
        """
        Create one resolved descriptor and verify its address.

        Raises PredictionMismatchError if the principal's nonce drifted from
        the window, or if the receipt's address differs from the prediction.
        Raises SubmissionError if the nonce query fails, or if the ledger
        rejects or reverts the creation.
        """
        index = offset + 1
        if descriptor.predicted is None or descriptor.resolved_args is None:
            raise DependencyNotReadyError(descriptor.name, f"{stage}[{index}]")

        expected_nonce = window.nonce(offset)
        try:
            live_nonce = self._ledger.get_sequence_number(self._principal)
        except Exception as exc:
            display.submission_failed(stage, index, descriptor.name, exc)
            raise SubmissionError(stage, index, descriptor.name, exc) from exc
        if live_nonce != expected_nonce:
            display.prediction_mismatch(descriptor.name, str(expected_nonce), str(live_nonce), "nonce")
            raise PredictionMismatchError(descriptor.name, str(expected_nonce), str(live_nonce), reason="nonce")

        display.resource_submitting(offset, window.size, descriptor.name, descriptor.contract)

        try:
            receipt = self._ledger.submit_create(self._principal, descriptor.contract, descriptor.resolved_args)
        except Exception as exc:
            display.submission_failed(stage, index, descriptor.name, exc)
            raise SubmissionError(stage, index, descriptor.name, exc) from exc

        if not receipt.succeeded or receipt.contract_address is None:
            cause = f"transaction {receipt.tx_hash} reverted"
            display.submission_failed(stage, index, descriptor.name, cause)
            raise SubmissionError(stage, index, descriptor.name, cause)

        if not same_address(receipt.contract_address, descriptor.predicted):
            display.prediction_mismatch(
                descriptor.name, descriptor.predicted, receipt.contract_address, "address"
            )
            raise PredictionMismatchError(descriptor.name, descriptor.predicted, receipt.contract_address)

        descriptor.assign_realized(to_checksum_address(receipt.contract_address))
        display.resource_deployed(descriptor.name, descriptor.realized)
        return descriptor.realized

    def deploy_batch(self, batch: Batch, graph: DeploymentGraph) -> list[str]:
        """Snapshot the nonce once, resolve the batch, then create it in order."""
        try:
            window = SequenceWindow.snapshot(self._ledger, self._principal, len(batch.descriptors))
        except Exception as exc:
            first = batch.descriptors[0].name
            display.submission_failed(batch.name, 1, first, exc)
            raise SubmissionError(batch.name, 1, first, exc) from exc
        resolved = resolve_batch(batch, window, graph)

        display.window_opened(batch, window)
        display.predictions(batch, window)

        return [self.deploy(d, window, offset, batch.name) for offset, d in enumerate(resolved)]

    def deploy_graph(self, graph: DeploymentGraph) -> dict[str, str]:
        self._graph = graph
        for batch in graph.batches:
            self.deploy_batch(batch, graph)
        return graph.realized_addresses()

    # ------------------------------------------------------------------
    # Wiring driver
    # ------------------------------------------------------------------

    def _realized(self, name: str) -> Any:
        if name in self._bound:
            return self._bound[name]
        if self._graph is not None and name in self._graph:
            return self._graph[name].realized
        return None

    def wire(self, plan: WiringPlan) -> list[WiringRecord]:
        """
        Execute the wiring plan.

        Each step's references are resolved against realized identities and
        earlier read-backs only. Raises WiringError with the 1-based step
        index on the first rejected call.
        """
        if self._graph is None:
            self._graph = plan.graph
        elif plan.graph is not self._graph:
            raise GraphDefinitionError("Wiring plan was built for a different graph.")

        total = len(plan)
        display.wiring_start(total)
        records: list[WiringRecord] = []

        for index, step in enumerate(plan.steps, start=1):
            display.wiring_step_start(index, total, step)
            context = f"wiring step {index} ({step.method})"
            target = substitute(step.target, self._realized, context)
            args = substitute(step.args, self._realized, context)
            contract = self._graph[step.target.name].contract

            receipt = None
            result: Any = None
            try:
                if step.kind == "read":
                    result = self._ledger.read(target, contract, step.method, args)
                else:
                    receipt = self._ledger.submit_call(self._principal, target, contract, step.method, args)
            except Exception as exc:
                display.wiring_failed(index, step.method, exc)
                raise WiringError(index, step.method, exc) from exc

            if receipt is not None and not receipt.succeeded:
                cause = f"transaction {receipt.tx_hash} reverted"
                display.wiring_failed(index, step.method, cause)
                raise WiringError(index, step.method, cause)

            if step.bind is not None:
                self._bound[step.bind] = result

            record = WiringRecord(
                index=index,
                target=target,
                method=step.method,
                args=args,
                description=step.description,
                tx_hash=receipt.tx_hash if receipt is not None else None,
                result=result,
            )
            self._records.append(record)
            records.append(record)
            display.wiring_step_done(record)

        return records

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def report(self, completed: bool = False) -> DeploymentReport:
        """Address map and wiring log as of now. Usable after a failure."""
        addresses = self._graph.realized_addresses() if self._graph is not None else {}
        for name, value in self._bound.items():
            if isinstance(value, str):
                addresses[name] = value

        return DeploymentReport(
            principal=self._principal,
            chain_id=self._chain_id,
            network=self._network,
            addresses=addresses,
            wiring=list(self._records),
            completed=completed,
        )

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self, graph: DeploymentGraph, plan: WiringPlan) -> DeploymentReport:
        """Deploy every batch, then wire. Raises on the first failure."""
        if plan.graph is not graph:
            raise GraphDefinitionError("Wiring plan was built for a different graph.")

        try:
            self._chain_id = self._ledger.chain_id()
        except Exception as exc:
            raise LedgerQueryError("chain_id", exc) from exc
        display.banner(self._network, self._principal, self._chain_id)

        self.deploy_graph(graph)
        self.wire(plan)

        report = self.report(completed=True)
        display.address_map(report.addresses)
        display.complete()
        return report
