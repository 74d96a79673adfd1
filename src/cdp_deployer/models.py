# models.py
# Data contracts for the deployment orchestrator.
# No orchestration logic lives here, only schema and the one-shot slot rules.

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from cdp_deployer.errors import IdentityAssignmentError


class Ref(BaseModel):
    """Forward reference to a descriptor's identity or to a wiring read-back."""

    model_config = ConfigDict(frozen=True)

    name: str

    def __init__(self, name: str, **data: Any) -> None:
        super().__init__(name=name, **data)

    def __repr__(self) -> str:
        return f"Ref({self.name!r})"


def iter_refs(value: Any):
    """Yield every Ref nested anywhere inside an argument value."""
    if isinstance(value, Ref):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from iter_refs(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_refs(item)


class Receipt(BaseModel):
    """Confirmed result of one submission, as returned by the ledger client."""

    tx_hash: str
    status: int = Field(default=1, description="1 = success, 0 = reverted.")
    contract_address: str | None = Field(default=None, description="Set for creations only.")
    block_number: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1


# ---------------------------------------------------------------------------
# Resource descriptors
# ---------------------------------------------------------------------------


class ResourceDescriptor(BaseModel):
    """
    One contract to create.

    `predicted` and `realized` are slots: each is written exactly once, in
    that order, and never changes afterwards.
    """

    name: str = Field(..., description="Unique label used by Ref().")
    contract: str = Field(..., description="Artifact name of the contract to create.")
    args: list[Any] = Field(default_factory=list, description="Literals and/or Ref().")
    predicted: str | None = None
    realized: str | None = None
    resolved_args: list[Any] | None = None

    def refs(self) -> list[Ref]:
        return list(iter_refs(self.args))

    def assign_prediction(self, address: str) -> None:
        if self.predicted is not None:
            raise IdentityAssignmentError(f"{self.name} already has a predicted identity ({self.predicted}).")
        self.predicted = address

    def assign_realized(self, address: str) -> None:
        if self.predicted is None:
            raise IdentityAssignmentError(f"{self.name} cannot be realized before it is predicted.")
        if self.realized is not None:
            raise IdentityAssignmentError(f"{self.name} already has a realized identity ({self.realized}).")
        self.realized = address

    @property
    def identity(self) -> str | None:
        """Best known address: realized if available, else predicted."""
        return self.realized or self.predicted


class Batch(BaseModel):
    """Descriptors that share one sequence window, in submission order."""

    name: str
    descriptors: list[ResourceDescriptor] = Field(..., min_length=1)

    def names(self) -> list[str]:
        return [d.name for d in self.descriptors]


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


class WiringStep(BaseModel):
    """A post-deployment call, described as data."""

    target: Ref = Field(..., description="Descriptor the call is sent to.")
    method: str
    args: list[Any] = Field(default_factory=list)
    description: str
    kind: Literal["transact", "read"] = "transact"
    bind: str | None = Field(default=None, description="Name under which a read result is stored.")

    def refs(self) -> list[Ref]:
        return [self.target, *iter_refs(self.args)]


class WiringRecord(BaseModel):
    """Log entry produced after each confirmed wiring step."""

    index: int = Field(..., description="1-based position in the wiring plan.")
    target: str
    method: str
    args: list[Any]
    description: str
    tx_hash: str | None = None
    result: Any = None


class DeploymentReport(BaseModel):
    """Everything needed to reconstruct the address map after a run."""

    principal: str
    chain_id: int | None = None
    network: str | None = None
    addresses: dict[str, str] = Field(default_factory=dict)
    wiring: list[WiringRecord] = Field(default_factory=list)
    completed: bool = False
