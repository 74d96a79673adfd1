# graph.py
# Resource descriptor graph: construction-time validation and batch resolution.
#
# A graph is an ordered list of batches. Inside a batch, descriptors may
# reference each other freely (cycles included) because every identity in
# the batch is predicted before any argument is substituted. Across batches,
# references may only point backwards.

from collections.abc import Callable
from typing import Any

from cdp_deployer.errors import DependencyNotReadyError, GraphDefinitionError
from cdp_deployer.models import Batch, Ref, ResourceDescriptor, WiringStep
from cdp_deployer.predictor import SequenceWindow


# ---------------------------------------------------------------------------
# Substitution
# ---------------------------------------------------------------------------


def substitute(value: Any, lookup: Callable[[str], str | None], context: str) -> Any:
    """
    Replace every Ref inside `value` with the address returned by `lookup`.

    Raises DependencyNotReadyError when lookup has nothing for a name.
    Containers are rebuilt; literals pass through untouched.
    """
    if isinstance(value, Ref):
        resolved = lookup(value.name)
        if resolved is None:
            raise DependencyNotReadyError(value.name, context)
        return resolved
    if isinstance(value, dict):
        return {key: substitute(item, lookup, context) for key, item in value.items()}
    if isinstance(value, list):
        return [substitute(item, lookup, context) for item in value]
    if isinstance(value, tuple):
        return tuple(substitute(item, lookup, context) for item in value)
    return value


# ---------------------------------------------------------------------------
# DeploymentGraph
# ---------------------------------------------------------------------------


class DeploymentGraph:
    """
    Ordered batches of descriptors, validated on construction.

    Every Ref must name a descriptor in the same batch or in an earlier one.
    Anything else is a definition error, raised here rather than halfway
    through a live deployment.
    """

    def __init__(self, batches: list[Batch]) -> None:
        if not batches:
            raise GraphDefinitionError("A deployment graph needs at least one batch.")

        self._batches = list(batches)
        self._descriptors: dict[str, ResourceDescriptor] = {}
        self._batch_of: dict[str, str] = {}

        batch_names: set[str] = set()
        for batch in self._batches:
            if batch.name in batch_names:
                raise GraphDefinitionError(f"Duplicate batch name {batch.name!r}.")
            batch_names.add(batch.name)

            for descriptor in batch.descriptors:
                if descriptor.name in self._descriptors:
                    raise GraphDefinitionError(f"Duplicate descriptor name {descriptor.name!r}.")
                self._descriptors[descriptor.name] = descriptor
                self._batch_of[descriptor.name] = batch.name

            # Refs are checked after the whole batch is registered so that
            # intra-batch cycles are accepted.
            for descriptor in batch.descriptors:
                for ref in descriptor.refs():
                    if ref.name not in self._descriptors:
                        raise GraphDefinitionError(
                            f"{batch.name}.{descriptor.name} references {ref.name!r}, "
                            "which is not declared in this batch or an earlier one."
                        )

    @property
    def batches(self) -> list[Batch]:
        return list(self._batches)

    def __contains__(self, name: str) -> bool:
        return name in self._descriptors

    def __getitem__(self, name: str) -> ResourceDescriptor:
        return self._descriptors[name]

    def descriptors(self) -> list[ResourceDescriptor]:
        return [d for batch in self._batches for d in batch.descriptors]

    def batch_of(self, name: str) -> str:
        return self._batch_of[name]

    def realized_addresses(self) -> dict[str, str]:
        """Address map of every descriptor realized so far, in graph order."""
        return {d.name: d.realized for d in self.descriptors() if d.realized is not None}


# ---------------------------------------------------------------------------
# Batch resolution
# ---------------------------------------------------------------------------


def resolve_batch(batch: Batch, window: SequenceWindow, graph: DeploymentGraph) -> list[ResourceDescriptor]:
    """
    Predict and substitute one batch.

    1. Assign predicted identities in declared order from the window.
    2. Substitute every Ref with the referenced identity.

    Returns the descriptors in the same order; that order is the submission
    order and must not change.
    """
    if window.size != len(batch.descriptors):
        raise GraphDefinitionError(
            f"Window of size {window.size} does not cover batch {batch.name!r} "
            f"({len(batch.descriptors)} descriptors)."
        )

    for offset, descriptor in enumerate(batch.descriptors):
        descriptor.assign_prediction(window.predict(offset))

    def lookup(name: str) -> str | None:
        return graph[name].identity if name in graph else None

    for descriptor in batch.descriptors:
        descriptor.resolved_args = substitute(
            descriptor.args, lookup, f"{batch.name}.{descriptor.name}"
        )

    return list(batch.descriptors)


# ---------------------------------------------------------------------------
# WiringPlan
# ---------------------------------------------------------------------------


class WiringPlan:
    """
    Ordered post-deployment calls, validated against a graph.

    A step may reference any descriptor in the graph, or the bind of a read
    step that comes before it.
    """

    def __init__(self, steps: list[WiringStep], graph: DeploymentGraph) -> None:
        self._steps = list(steps)
        self._graph = graph

        bound: set[str] = set()
        for index, step in enumerate(self._steps, start=1):
            if step.target.name not in graph:
                raise GraphDefinitionError(
                    f"Wiring step {index} ({step.method}) targets unknown descriptor "
                    f"{step.target.name!r}."
                )
            for ref in step.refs():
                if ref.name not in graph and ref.name not in bound:
                    raise GraphDefinitionError(
                        f"Wiring step {index} ({step.method}) references {ref.name!r} "
                        "before it is deployed or bound."
                    )
            if step.kind == "read":
                if not step.bind:
                    raise GraphDefinitionError(f"Read step {index} ({step.method}) has no bind name.")
                if step.bind in graph or step.bind in bound:
                    raise GraphDefinitionError(f"Bind name {step.bind!r} is already in use.")
                bound.add(step.bind)
            elif step.bind is not None:
                raise GraphDefinitionError(f"Only read steps may bind a result (step {index}).")

    @property
    def steps(self) -> list[WiringStep]:
        return list(self._steps)

    @property
    def graph(self) -> DeploymentGraph:
        return self._graph

    def __len__(self) -> int:
        return len(self._steps)
