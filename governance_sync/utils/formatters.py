"""Shared formatting and file utilities for commands."""

import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict

from rich.console import Console
from rich.table import Table

from governance_sync.proposals.models import Proposal, ProposalStatus
from governance_sync.quorum.calculator import QuorumProgress
from governance_sync.votes.weight import format_vote_display

# Shared console instance
console = Console()

STATUS_STYLES = {
    ProposalStatus.ACTIVE: "green",
    ProposalStatus.EXPIRED: "dim",
    ProposalStatus.EXECUTED: "cyan",
}


def format_address(address: str, length: int = 10) -> str:
    """
    Format an Ethereum address to show first and last characters.

    Args:
        address: Ethereum address
        length: Total visible characters (default: 10)

    Returns:
        Formatted address like "0x1234...5678"
    """
    if not address:
        return "N/A"
    if len(address) <= length:
        return address
    return f"{address[:6]}...{address[-4:]}"


def format_timestamp(
    timestamp: int, format_str: str = "%Y-%m-%d %H:%M"
) -> str:
    dt = datetime.fromtimestamp(timestamp)
    return dt.strftime(format_str)


def format_amount(amount: int, decimals: int = 18, places: int = 4) -> str:
    """
    Format a token amount in base units as a decimal string.

    Uses Decimal so large amounts are not rounded through float.
    """
    value = Decimal(amount).scaleb(-decimals)
    return f"{value:.{places}f}"


def format_status(status: ProposalStatus) -> str:
    style = STATUS_STYLES[status]
    return f"[{style}]{status.value}[/{style}]"


def format_progress(progress: QuorumProgress) -> str:
    if progress.threshold is None:
        return "[dim]n/a[/dim]"
    if progress.reached:
        return f"[bold green]{progress.percentage}% (reached)[/bold green]"
    return f"{progress.percentage}%"


def save_json_output(
    data: Dict[str, Any],
    filename: str,
    output_dir: str = "output",
    print_path: bool = True,
) -> str:
    """
    Save data to a JSON file with automatic directory creation.

    Args:
        data: Data to save
        filename: Output filename (can include subdirectories)
        output_dir: Base output directory (default: 'output')
        print_path: Whether to print the saved file path

    Returns:
        Full path to saved file
    """
    filepath = Path(output_dir) / filename
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w") as f:
        json.dump(data, f, indent=2)

    if print_path:
        console.print(f"[cyan]Data saved to:[/cyan] {filepath}")

    return str(filepath)


def create_proposals_table() -> Table:
    """
    Create a Rich table with standard proposal columns.

    Returns:
        Configured Rich Table for proposal display
    """
    table = Table(
        show_header=True,
        header_style="bold cyan",
        show_lines=False,
        pad_edge=False,
        box=None,
    )
    table.add_column("ID", width=4, justify="right")
    table.add_column("Description", width=32)
    table.add_column("Recipient", width=13)
    table.add_column("Amount", width=12, justify="right")
    table.add_column("Votes", width=10, justify="right")
    table.add_column("Quorum", width=16, justify="right")
    table.add_column("Deadline", width=16)
    table.add_column("Status", width=10, justify="center")
    return table


def add_proposal_to_table(
    table: Table,
    proposal: Proposal,
    progress: QuorumProgress,
    now: int,
) -> None:
    table.add_row(
        str(proposal.id),
        proposal.description[:32],
        format_address(proposal.recipient),
        format_amount(proposal.amount),
        format_vote_display(proposal.vote_count),
        format_progress(progress),
        format_timestamp(proposal.deadline),
        format_status(proposal.status(now)),
    )
