#!/usr/bin/env python3
"""
Unified CLI for Governance Sync.

Connection settings come from GOV_* environment variables (or a .env file).

Examples:
  - Proposals
    governance-sync proposals [--json proposals.json]
    governance-sync proposal --id 3

  - Quorum and voting
    governance-sync quorum
    governance-sync vote-status [--account 0x...]
    governance-sync vote --proposal-id 3

  - Dashboard
    governance-sync stats
    governance-sync activity [--blocks 10]

  - Live view
    governance-sync watch
"""

import argparse
import asyncio
import time
from typing import List, Optional

from rich.table import Table
from web3 import Account

from governance_sync.analytics.service import (
    DEFAULT_LOOKBACK_BLOCKS,
    compute_dashboard,
    fetch_activity,
)
from governance_sync.ledger.web3_client import Web3LedgerClient
from governance_sync.shared.config import LedgerConfig
from governance_sync.shared.services.http_client import aclose_async_client
from governance_sync.sync.context import LedgerContext
from governance_sync.sync.notifications import (
    CompositeNotifier,
    ConsoleNotifier,
    NotificationDispatcher,
    WebhookNotifier,
)
from governance_sync.utils.formatters import (
    add_proposal_to_table,
    console,
    create_proposals_table,
    format_address,
    format_amount,
    format_progress,
    format_status,
    format_timestamp,
    save_json_output,
)
from governance_sync.votes.weight import format_vote_display


def _resolve_account(config: LedgerConfig) -> Optional[str]:
    """GOV_ACCOUNT, or the address behind GOV_PRIVATE_KEY."""
    if config.account:
        return config.account
    if config.private_key:
        return Account.from_key(config.private_key).address
    return None


def _build_context(account: Optional[str] = None) -> LedgerContext:
    config = LedgerConfig.from_env(account=account)
    client = Web3LedgerClient(config)
    return LedgerContext.from_config(
        client, config, account=_resolve_account(config)
    )


def _render_proposals(context: LedgerContext) -> None:
    now = int(time.time())
    table = create_proposals_table()
    for proposal in context.proposals:
        add_proposal_to_table(
            table, proposal, context.quorum_progress(proposal.id), now
        )
    console.print(table)


def cmd_proposals(args: argparse.Namespace) -> None:
    async def run():
        context = _build_context()
        await context.start(live=False)
        try:
            proposals = context.proposals
            console.print(f"Proposals: {len(proposals)}")

            if args.json:
                save_json_output(
                    {
                        "quorum_threshold": (
                            str(context.quorum_threshold)
                            if context.quorum_threshold is not None
                            else None
                        ),
                        "proposals": [p.to_dict() for p in proposals],
                    },
                    args.json,
                )
                return

            _render_proposals(context)
        finally:
            await context.close()

    asyncio.run(run())


def cmd_proposal(args: argparse.Namespace) -> None:
    """Show one proposal with its quorum progress and vote status."""

    async def run():
        context = _build_context()
        await context.start(live=False)
        try:
            proposal = await context.refresh_one(args.id)
            if proposal is None:
                console.print(f"[red]Proposal #{args.id} not found[/red]")
                return

            weight = context.decoded_weight(proposal.id)
            progress = context.quorum_progress(proposal.id)
            console.print(f"[bold]Proposal #{proposal.id}[/bold]")
            console.print(f"  Description: {proposal.description}")
            console.print(f"  Recipient:   {proposal.recipient}")
            console.print(f"  Amount:      {format_amount(proposal.amount)}")
            console.print(
                f"  Votes:       {format_vote_display(weight.display_count)}"
            )
            console.print(f"  Quorum:      {format_progress(progress)}")
            if not progress.reached and progress.threshold:
                console.print(f"  Remaining:   {progress.remaining} raw weight")
            console.print(
                f"  Deadline:    {format_timestamp(proposal.deadline)}"
            )
            console.print(
                f"  Status:      {format_status(proposal.status(int(time.time())))}"
            )
            if context.account:
                voted = "yes" if context.has_voted(proposal.id) else "no"
                console.print(
                    f"  Voted by {format_address(context.account)}: {voted}"
                )
        finally:
            await context.close()

    asyncio.run(run())


def cmd_quorum(args: argparse.Namespace) -> None:
    async def run():
        context = _build_context()
        try:
            threshold = await context.refresh_threshold()
            if threshold is None:
                console.print("[yellow]Quorum threshold unavailable[/yellow]")
            else:
                console.print(f"Quorum threshold: {threshold}")
        finally:
            await context.close()

    asyncio.run(run())


def cmd_vote_status(args: argparse.Namespace) -> None:
    async def run():
        context = _build_context(account=args.account)
        if not context.account:
            console.print(
                "[red]No account: pass --account or set GOV_ACCOUNT[/red]"
            )
            return

        await context.start(live=False)
        try:
            table = Table(
                show_header=True,
                header_style="bold cyan",
                pad_edge=False,
                box=None,
            )
            table.add_column("ID", width=4, justify="right")
            table.add_column("Description", width=32)
            table.add_column("Voted", width=6, justify="center")
            statuses = context.vote_statuses()
            for proposal in context.proposals:
                voted = statuses.get(proposal.id, False)
                table.add_row(
                    str(proposal.id),
                    proposal.description[:32],
                    "[green]yes[/green]" if voted else "[dim]no[/dim]",
                )
            console.print(f"Vote status for {context.account}")
            console.print(table)
        finally:
            await context.close()

    asyncio.run(run())


def cmd_stats(args: argparse.Namespace) -> None:
    async def run():
        context = _build_context()
        await context.start(live=False)
        try:
            stats = compute_dashboard(context.store.snapshot().values())
            treasury = await context.treasury_balance()
            console.print("Dashboard:")
            console.print(f"  Proposals: {stats.total}")
            console.print(f"  Active:    {stats.active}")
            console.print(f"  Executed:  {stats.executed}")
            console.print(f"  Expired:   {stats.expired}")
            console.print(f"  Votes:     {stats.total_votes}")
            console.print(
                "  Treasury:  "
                + (f"{format_amount(treasury)} ETH" if treasury is not None else "n/a")
            )
            if context.account:
                console.print(f"Account {format_address(context.account)}:")
                balance = context.token_balance
                console.print(
                    "  Balance:      "
                    + (f"{format_amount(balance)} GOV" if balance is not None else "n/a")
                )
                console.print(f"  Voting power: {context.voting_power}")
        finally:
            await context.close()

    asyncio.run(run())


def cmd_activity(args: argparse.Namespace) -> None:
    async def run():
        context = _build_context()
        try:
            result = await fetch_activity(
                context.client, args.blocks, decoder=context.decoder
            )
            activities = result.unwrap()
            for error in result.errors:
                console.print(f"[yellow]{error.message}[/yellow]")

            if not activities:
                console.print(
                    f"No activity in the last {args.blocks} blocks"
                )
                return

            table = Table(
                show_header=True,
                header_style="bold cyan",
                pad_edge=False,
                box=None,
            )
            table.add_column("Time", width=16)
            table.add_column("Type", width=8)
            table.add_column("Proposal", width=8, justify="right")
            table.add_column("By", width=13)
            table.add_column("Details", width=32)
            for activity in activities:
                details = (
                    (activity.description or "")[:32]
                    if activity.type == "proposal"
                    else format_vote_display(activity.votes or 0)
                )
                table.add_row(
                    format_timestamp(activity.timestamp),
                    activity.type,
                    str(activity.proposal_id),
                    format_address(activity.actor or ""),
                    details,
                )
            console.print(table)
        finally:
            await context.close()

    asyncio.run(run())


def cmd_vote(args: argparse.Namespace) -> None:
    async def run():
        context = _build_context()
        await context.start(live=False)
        try:
            reason = context.vote_blocker(args.proposal_id)
            if reason is not None:
                console.print(
                    f"[yellow]Cannot vote on proposal #{args.proposal_id}: "
                    f"{reason}[/yellow]"
                )
                return

            receipt = await context.submit_vote(args.proposal_id)
            console.print(
                f"[green]Vote confirmed[/green] in block {receipt['block_number']}"
                f" (tx {receipt['transaction_hash']})"
            )
            weight = context.decoded_weight(args.proposal_id)
            if weight is not None:
                console.print(
                    f"Proposal #{args.proposal_id} now has "
                    f"{format_vote_display(weight.display_count)} "
                    f"({weight.percentage}% of quorum)"
                )
        finally:
            await context.close()

    asyncio.run(run())


def cmd_watch(args: argparse.Namespace) -> None:
    """Follow the ledger live until interrupted."""

    async def run():
        config = LedgerConfig.from_env()
        dispatchers: List[NotificationDispatcher] = [ConsoleNotifier(console)]
        webhook = None
        if config.webhook_url:
            webhook = WebhookNotifier(config.webhook_url)
            dispatchers.append(webhook)

        context = LedgerContext.from_config(
            Web3LedgerClient(config),
            config,
            notifier=CompositeNotifier(dispatchers),
            account=_resolve_account(config),
        )
        try:
            async with context:
                _render_proposals(context)
                console.print(
                    "[dim]Watching for new proposals and votes...[/dim]"
                )
                rendered = context.reconciler.last_summary
                while True:
                    await asyncio.sleep(args.interval)
                    summary = context.reconciler.last_summary
                    if summary is not rendered:
                        rendered = summary
                        if summary.records_committed:
                            _render_proposals(context)
        finally:
            if webhook is not None:
                await webhook.drain()
                await aclose_async_client()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("Stopped")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="governance-sync",
        description="Unified CLI for Governance Sync",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # proposals
    p_list = sub.add_parser("proposals", help="List all proposals")
    p_list.add_argument("--json", type=str, help="Save proposals to a JSON file")
    p_list.set_defaults(func=cmd_proposals)

    # proposal
    p_one = sub.add_parser("proposal", help="Show one proposal")
    p_one.add_argument("--id", type=int, required=True)
    p_one.set_defaults(func=cmd_proposal)

    # quorum
    p_quorum = sub.add_parser("quorum", help="Show the quorum threshold")
    p_quorum.set_defaults(func=cmd_quorum)

    # vote-status
    p_vs = sub.add_parser(
        "vote-status",
        help="Show which proposals an account has voted on",
    )
    p_vs.add_argument("--account", type=str, help="Account address")
    p_vs.set_defaults(func=cmd_vote_status)

    # stats
    p_stats = sub.add_parser("stats", help="Show dashboard statistics")
    p_stats.set_defaults(func=cmd_stats)

    # activity
    p_act = sub.add_parser("activity", help="Show recent activity")
    p_act.add_argument(
        "--blocks",
        type=int,
        default=DEFAULT_LOOKBACK_BLOCKS,
        help="Number of recent blocks to scan",
    )
    p_act.set_defaults(func=cmd_activity)

    # vote
    p_vote = sub.add_parser("vote", help="Vote on a proposal")
    p_vote.add_argument("--proposal-id", type=int, required=True)
    p_vote.set_defaults(func=cmd_vote)

    # watch
    p_watch = sub.add_parser("watch", help="Follow proposals and votes live")
    p_watch.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds between redraw checks",
    )
    p_watch.set_defaults(func=cmd_watch)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        args.func(args)
    except Exception as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        raise


if __name__ == "__main__":
    main()
