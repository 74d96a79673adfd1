# display.py
# All terminal output for the deployment orchestrator.
#
# This module owns presentation entirely. deployer.py never formats strings;
# it calls named functions here. Swap this file to change the entire UI.
#
# Colour language:
#   cyan:    batches and scaffolding
#   yellow:  predictions and sequence windows
#   green:   confirmed creations and calls
#   magenta: wiring steps
#   red:     failures, halts, mismatches

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from cdp_deployer.graph import DeploymentGraph
from cdp_deployer.models import Batch, WiringRecord, WiringStep
from cdp_deployer.predictor import SequenceWindow

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: object, max_len: int = 120) -> str:
    text = str(value)
    if len(text) > max_len:
        return text[:max_len] + "…"
    return text


# ---------------------------------------------------------------------------
# Run entry
# ---------------------------------------------------------------------------


def banner(network: str | None, principal: str, chain_id: int | None) -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]CDP Protocol Deployment[/bold cyan]\n"
            "[dim]Predict → deploy → verify → wire[/dim]\n\n"
            f"[dim]Network   :[/dim] [white]{network or '-'}[/white]\n"
            f"[dim]Chain id  :[/dim] [white]{chain_id if chain_id is not None else '-'}[/white]\n"
            f"[dim]Principal :[/dim] [white]{principal}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def deferred_integration(what: str) -> None:
    console.print(
        _label("DEFERRED", "yellow"),
        f"[yellow] {what} not configured — passing the zero address.[/yellow]",
    )


# ---------------------------------------------------------------------------
# Prediction
# ---------------------------------------------------------------------------


def window_opened(batch: Batch, window: SequenceWindow) -> None:
    console.print()
    console.print(Rule(f"[cyan]BATCH {batch.name} — {window.size} creation(s)[/cyan]", style="cyan"))
    last = window.start + window.size - 1
    console.print(
        f"  [yellow]↳ Sequence window[/yellow] [dim yellow]nonces {window.start}..{last}[/dim yellow]"
    )


def predictions(batch: Batch, window: SequenceWindow) -> None:
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold yellow", padding=(0, 1))
    table.add_column("Nonce", justify="right", width=6)
    table.add_column("Resource", style="bold white", width=20)
    table.add_column("Predicted address", style="yellow")

    for offset, descriptor in enumerate(batch.descriptors):
        table.add_row(str(window.nonce(offset)), descriptor.name, descriptor.predicted or "?")
    console.print(table)


def plan_table(graph: DeploymentGraph, start: int) -> None:
    """Dry-run view: every batch predicted from one starting nonce."""
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="cyan",
        show_header=True,
        header_style="bold cyan",
        padding=(0, 1),
    )
    table.add_column("Batch", width=8)
    table.add_column("Nonce", justify="right", width=6)
    table.add_column("Resource", style="bold white", width=20)
    table.add_column("Contract", style="dim white", width=20)
    table.add_column("Predicted address", style="yellow")

    nonce = start
    for batch in graph.batches:
        for descriptor in batch.descriptors:
            table.add_row(batch.name, str(nonce), descriptor.name, descriptor.contract, descriptor.predicted or "?")
            nonce += 1

    console.print()
    console.print(
        Panel(
            table,
            title=_label("DEPLOYMENT PLAN", "cyan"),
            subtitle="[dim]Valid only if nothing else is sent from the principal first[/dim]",
            border_style="cyan",
            padding=(0, 1),
        )
    )


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


def resource_submitting(offset: int, total: int, name: str, contract: str) -> None:
    console.print(
        f"[bold cyan]  CREATE [{offset + 1}/{total}][/bold cyan]  [white]{name}[/white]"
        f"  [dim]({contract})[/dim]"
    )


def resource_deployed(name: str, address: str) -> None:
    console.print(f"  [bold green]✓ {name} deployed:[/bold green] [white]{address}[/white]")


def prediction_mismatch(name: str, predicted: str, realized: str, reason: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold red]{name}: {reason} does not match the prediction.[/bold red]\n"
            f"[white]Predicted:[/white] [yellow]{predicted}[/yellow]\n"
            f"[white]Realized :[/white] [red]{realized}[/red]\n"
            "[dim]Downstream constructor arguments already embed the prediction. Halting.[/dim]",
            title=_label("PREDICTION MISMATCH ✗", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )


def submission_failed(stage: str, index: int, name: str, cause: object) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold red]Creation of {name} failed ({stage}[{index}]).[/bold red]\n\n"
            f"[white]{_mono(cause, 400)}[/white]\n"
            "[dim]Resources created before this point remain on the ledger.[/dim]",
            title=_label("SUBMISSION FAILED ✗", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def wiring_start(total: int) -> None:
    console.print()
    console.print(Rule(f"[magenta]WIRING — {total} step(s)[/magenta]", style="magenta"))


def wiring_step_start(index: int, total: int, step: WiringStep) -> None:
    console.print(
        f"[bold magenta]  STEP [{index}/{total}][/bold magenta]  [white]{step.description}[/white]"
        f"  [dim]{step.target.name}.{step.method}[/dim]"
    )


def wiring_step_done(record: WiringRecord) -> None:
    if record.tx_hash is not None:
        console.print(f"  [bold green]✓ Confirmed[/bold green]  [dim]{record.tx_hash}[/dim]")
    else:
        console.print(f"  [bold green]✓ Read[/bold green]  [white]{_mono(record.result)}[/white]")


def wiring_failed(index: int, method: str, cause: object) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold red]Wiring step {index} ({method}) failed.[/bold red]\n\n"
            f"[white]{_mono(cause, 400)}[/white]\n"
            "[dim]All resources exist; the system is partially wired.[/dim]",
            title=_label("WIRING FAILED ✗", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


def address_map(addresses: dict[str, str], title: str = "ADDRESS MAP") -> None:
    console.print()
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="dim",
        show_header=True,
        header_style="bold dim",
        padding=(0, 1),
    )
    table.add_column("Resource", style="bold white", width=24)
    table.add_column("Address", style="white")

    for name, address in addresses.items():
        table.add_row(name, address)

    console.print(Panel(table, title=f"[dim]{title}[/dim]", border_style="dim", padding=(0, 1)))


def report_written(path: str) -> None:
    console.print(f"[dim]  Report written to[/dim] [white]{path}[/white]")


def complete() -> None:
    console.print()
    console.print(
        Panel(
            "[bold green]All resources deployed and wired.[/bold green]",
            title=_label("DONE", "green"),
            border_style="green",
            padding=(0, 2),
        )
    )
    console.print()


def halt(reason: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold white]{reason}[/bold white]",
            title=_label("HALT", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
    console.print()
