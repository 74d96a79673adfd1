# ledger.py
# Ledger client boundary.
#
# The orchestrator only talks to the ledger through LedgerClient. Every
# submission blocks until the transaction is mined (or the wait times out);
# nothing here retries.

import json
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field
from web3 import Web3

from cdp_deployer.models import Receipt


class LedgerClient(Protocol):
    def get_sequence_number(self, principal: str) -> int: ...

    def chain_id(self) -> int: ...

    def submit_create(self, principal: str, contract: str, args: list[Any]) -> Receipt: ...

    def submit_call(
        self, principal: str, target: str, contract: str, method: str, args: list[Any]
    ) -> Receipt: ...

    def read(self, target: str, contract: str, method: str, args: list[Any]) -> Any: ...


# ---------------------------------------------------------------------------
# Hardhat artifacts
# ---------------------------------------------------------------------------


class Artifact(BaseModel):
    """ABI and creation bytecode of one compiled contract."""

    model_config = ConfigDict(populate_by_name=True)

    contract_name: str = Field(..., alias="contractName")
    abi: list[dict]
    bytecode: str = "0x"


class ArtifactStore:
    """
    Lazily loads Hardhat artifacts (`artifacts/contracts/**/<Name>.json`).

    Debug files (`*.dbg.json`) sit next to the real artifacts and are skipped.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._cache: dict[str, Artifact] = {}

    def _find(self, contract: str) -> Path:
        matches = sorted(
            p for p in self._root.rglob(f"{contract}.json") if not p.name.endswith(".dbg.json")
        )
        if not matches:
            raise FileNotFoundError(f"No artifact for {contract!r} under {self._root}.")
        if len(matches) > 1:
            raise FileNotFoundError(
                f"Ambiguous artifact for {contract!r}: {', '.join(str(m) for m in matches)}"
            )
        return matches[0]

    def get(self, contract: str) -> Artifact:
        if contract not in self._cache:
            data = json.loads(self._find(contract).read_text(encoding="utf-8"))
            data.setdefault("contractName", contract)
            self._cache[contract] = Artifact.model_validate(data)
        return self._cache[contract]


def to_abi_args(args: list[Any]) -> list[Any]:
    """Dicts become ABI tuples in field order; everything else passes through."""
    converted: list[Any] = []
    for value in args:
        if isinstance(value, dict):
            converted.append(tuple(to_abi_args(list(value.values()))))
        elif isinstance(value, list):
            converted.append(to_abi_args(value))
        else:
            converted.append(value)
    return converted


# ---------------------------------------------------------------------------
# Web3LedgerClient
# ---------------------------------------------------------------------------


class Web3LedgerClient:
    """
    JSON-RPC ledger client backed by web3.py.

    Signs locally with the principal's key and waits for each receipt.
    The nonce of every transaction is taken from the ledger right before
    signing, so it always matches what the orchestrator predicted.
    """

    def __init__(
        self,
        rpc_url: str,
        private_key: str,
        artifacts: ArtifactStore,
        timeout: float = 120.0,
    ) -> None:
        self._w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        self._account = self._w3.eth.account.from_key(private_key)
        self._artifacts = artifacts
        self._timeout = timeout

    @property
    def principal(self) -> str:
        return self._account.address

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_sequence_number(self, principal: str) -> int:
        return self._w3.eth.get_transaction_count(Web3.to_checksum_address(principal))

    def chain_id(self) -> int:
        return self._w3.eth.chain_id

    def read(self, target: str, contract: str, method: str, args: list[Any]) -> Any:
        instance = self._w3.eth.contract(
            address=Web3.to_checksum_address(target), abi=self._artifacts.get(contract).abi
        )
        return instance.get_function_by_name(method)(*to_abi_args(args)).call()

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    def _send(self, principal: str, transaction: Any) -> Receipt:
        if principal.lower() != self._account.address.lower():
            raise ValueError(f"Client holds the key for {self._account.address}, not {principal}.")

        tx = transaction.build_transaction(
            {
                "from": self._account.address,
                "nonce": self.get_sequence_number(self._account.address),
                "chainId": self.chain_id(),
            }
        )
        signed = self._account.sign_transaction(tx)
        tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
        raw = self._w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self._timeout)

        contract_address = raw.get("contractAddress")
        return Receipt(
            tx_hash=Web3.to_hex(tx_hash),
            status=raw["status"],
            contract_address=contract_address,
            block_number=raw.get("blockNumber"),
        )

    def submit_create(self, principal: str, contract: str, args: list[Any]) -> Receipt:
        artifact = self._artifacts.get(contract)
        factory = self._w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
        return self._send(principal, factory.constructor(*to_abi_args(args)))

    def submit_call(
        self, principal: str, target: str, contract: str, method: str, args: list[Any]
    ) -> Receipt:
        instance = self._w3.eth.contract(
            address=Web3.to_checksum_address(target), abi=self._artifacts.get(contract).abi
        )
        return self._send(principal, instance.get_function_by_name(method)(*to_abi_args(args)))
