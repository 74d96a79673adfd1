# errors.py
# Exception taxonomy for the deployment orchestrator.
#
# Nothing here is retryable. Contract creation is not idempotent, so every
# error propagates to the top level and halts the run.


class DeploymentError(Exception):
    """Base class for every orchestration failure."""


# ---------------------------------------------------------------------------
# Construction-time errors
# ---------------------------------------------------------------------------


class GraphDefinitionError(DeploymentError):
    """Raised when a graph or wiring plan is malformed. Caught before any submission."""


class ConfigError(DeploymentError):
    """Raised when the deployment configuration cannot be loaded or validated."""


# ---------------------------------------------------------------------------
# Run-time errors
# ---------------------------------------------------------------------------


class IdentityAssignmentError(DeploymentError):
    """Raised when a predicted or realized slot is written twice or out of order."""


class DependencyNotReadyError(DeploymentError):
    """Raised when a reference is used before its identity exists."""

    def __init__(self, name: str, context: str) -> None:
        self.name = name
        self.context = context
        super().__init__(f"{context}: reference {name!r} has no identity yet.")


class PredictionMismatchError(DeploymentError):
    """Realized address disagrees with the prediction. Always fatal."""

    def __init__(self, name: str, predicted: str, realized: str, reason: str = "address") -> None:
        self.name = name
        self.predicted = predicted
        self.realized = realized
        self.reason = reason
        super().__init__(
            f"Prediction mismatch for {name!r} ({reason}): "
            f"predicted {predicted}, got {realized}."
        )


class SubmissionError(DeploymentError):
    """A creation was rejected, reverted or timed out."""

    def __init__(self, stage: str, index: int, name: str, cause: BaseException | str) -> None:
        self.stage = stage
        self.index = index
        self.name = name
        self.cause = cause
        super().__init__(
            f"Creation failed at {stage}[{index}] ({name}): {cause}"
        )


class LedgerQueryError(DeploymentError):
    """A read-only ledger query failed outside any creation or wiring step."""

    def __init__(self, query: str, cause: BaseException | str) -> None:
        self.query = query
        self.cause = cause
        super().__init__(f"Ledger query {query} failed: {cause}")


class WiringError(DeploymentError):
    """A post-deployment wiring call was rejected."""

    def __init__(self, index: int, method: str, cause: BaseException | str) -> None:
        self.index = index
        self.method = method
        self.cause = cause
        super().__init__(f"Wiring step {index} ({method}) failed: {cause}")
