from collections import defaultdict
from typing import Any

import pytest
from eth_utils import to_checksum_address

from cdp_deployer.config import DeploymentConfig
from cdp_deployer.models import Receipt
from cdp_deployer.predictor import predict_address

PRINCIPAL = to_checksum_address("0x6ac7ea33f8831ea9dcc53393aaa88b25a785dbf0")


class LedgerRejected(Exception):
    """Stand-in for an RPC error or a dropped transaction."""


class FakeLedger:
    """
    In-memory ledger that assigns CREATE addresses by the real rule.

    Models just enough contract behaviour for the wiring plan: a factory's
    deployNewInstance spawns a clone (nonces from 1, as for contracts) and
    troveManagers(i) reads it back.
    """

    def __init__(
        self,
        principal: str = PRINCIPAL,
        start_nonce: int = 0,
        fail_on_contract: str | None = None,
        revert_on_contract: str | None = None,
        skew_on_contract: str | None = None,
        interloper_after: str | None = None,
        fail_on_method: str | None = None,
        drop_nonce_query: int | None = None,
    ) -> None:
        self.principal = principal
        self.nonces: dict[str, int] = defaultdict(int)
        self.nonces[principal.lower()] = start_nonce
        self.fail_on_contract = fail_on_contract
        self.revert_on_contract = revert_on_contract
        self.skew_on_contract = skew_on_contract
        self.interloper_after = interloper_after
        self.fail_on_method = fail_on_method
        # 1-based index of the nonce query that raises ConnectionError.
        self.drop_nonce_query = drop_nonce_query

        self.created: list[dict[str, Any]] = []
        self.calls: list[dict[str, Any]] = []
        self.reads: list[dict[str, Any]] = []
        self.registries: dict[str, list[str]] = defaultdict(list)
        self.nonce_queries = 0
        self._tx = 0

    def _receipt(self, contract_address: str | None = None, status: int = 1) -> Receipt:
        self._tx += 1
        return Receipt(
            tx_hash=f"0x{self._tx:064x}",
            status=status,
            contract_address=contract_address,
            block_number=self._tx,
        )

    # LedgerClient --------------------------------------------------------

    def get_sequence_number(self, principal: str) -> int:
        self.nonce_queries += 1
        if self.nonce_queries == self.drop_nonce_query:
            raise ConnectionError("RPC dropped")
        return self.nonces[principal.lower()]

    def chain_id(self) -> int:
        return 31337

    def submit_create(self, principal: str, contract: str, args: list[Any]) -> Receipt:
        if contract == self.fail_on_contract:
            raise LedgerRejected(f"{contract}: execution reverted")

        key = principal.lower()
        nonce = self.nonces[key]
        self.nonces[key] += 1

        if contract == self.revert_on_contract:
            return self._receipt(status=0)

        address = predict_address(principal, nonce + 100 if contract == self.skew_on_contract else nonce)
        self.created.append({"address": address, "contract": contract, "args": args})

        if contract == self.interloper_after:
            self.nonces[key] += 1

        return self._receipt(contract_address=address)

    def submit_call(self, principal: str, target: str, contract: str, method: str, args: list[Any]) -> Receipt:
        if method == self.fail_on_method:
            raise LedgerRejected(f"{method}: execution reverted")

        self.nonces[principal.lower()] += 1
        self.calls.append({"target": target, "contract": contract, "method": method, "args": args})

        if method == "deployNewInstance":
            registry = self.registries[target.lower()]
            registry.append(predict_address(target, len(registry) + 1))
        return self._receipt()

    def read(self, target: str, contract: str, method: str, args: list[Any]) -> Any:
        self.reads.append({"target": target, "contract": contract, "method": method, "args": args})
        if method == "troveManagers":
            return self.registries[target.lower()][args[0]]
        raise LedgerRejected(f"{contract} has no view {method!r}")


@pytest.fixture
def principal() -> str:
    return PRINCIPAL


@pytest.fixture
def make_ledger():
    def _make(**kwargs: Any) -> FakeLedger:
        return FakeLedger(**kwargs)

    return _make


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def config() -> DeploymentConfig:
    return DeploymentConfig()
