# predictor.py
# CREATE address prediction.
#
# The ledger assigns a principal-initiated contract the address
#   keccak256(rlp([sender, nonce]))[12:]
# so the address of every creation in a batch is known before the first one
# is submitted, provided the nonce is snapshotted once and nothing else is
# sent from the principal while the window is open.

from typing import TYPE_CHECKING

import rlp
from eth_utils import keccak, to_canonical_address, to_checksum_address
from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from cdp_deployer.ledger import LedgerClient


ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def predict_address(principal: str, nonce: int) -> str:
    """Checksummed address of the contract `principal` creates at `nonce`."""
    if nonce < 0:
        raise ValueError(f"Nonce must be non-negative, got {nonce}.")
    encoded = rlp.encode([to_canonical_address(principal), nonce])
    return to_checksum_address(keccak(encoded)[12:])


def same_address(left: str, right: str) -> bool:
    return left.lower() == right.lower()


# ---------------------------------------------------------------------------
# SequenceWindow
# ---------------------------------------------------------------------------


class SequenceWindow(BaseModel):
    """
    A contiguous block of nonces reserved for one batch of creations.

    The window is the only place a batch's nonces come from. It is built by
    reading the live counter exactly once; offsets are then added to that
    snapshot. Re-reading the counter mid-batch would already include the
    creations of the batch itself.
    """

    model_config = ConfigDict(frozen=True)

    principal: str
    start: int = Field(..., ge=0, description="Nonce snapshotted from the ledger.")
    size: int = Field(..., ge=1, description="Number of creations in the batch.")

    @classmethod
    def snapshot(cls, ledger: "LedgerClient", principal: str, size: int) -> "SequenceWindow":
        if size < 1:
            raise ValueError("A sequence window must reserve at least one nonce.")
        return cls(principal=principal, start=ledger.get_sequence_number(principal), size=size)

    def nonce(self, offset: int) -> int:
        if offset < 0 or offset >= self.size:
            raise IndexError(f"Offset {offset} is outside the window of size {self.size}.")
        return self.start + offset

    def predict(self, offset: int) -> str:
        return predict_address(self.principal, self.nonce(offset))

    def identities(self) -> list[str]:
        return [self.predict(offset) for offset in range(self.size)]
