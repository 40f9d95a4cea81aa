"""Entry point for the healthloop policy scheduler."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from healthloop.config import settings
from healthloop.policy.base import HealthPolicy
from healthloop.policy.executor import CycleReport, PoliciesExecutor
from healthloop.policy.registry import PolicyRegistry

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)


def _load_policies(path: str | None) -> list[HealthPolicy]:
    registry = PolicyRegistry(Path(path) if path else None)
    policies = registry.build_policies()
    for p in policies:
        p.initialize()
    return policies


def _close_policies(policies: list[HealthPolicy]) -> None:
    for p in policies:
        p.close()


def _print_report(report: CycleReport) -> None:
    table = Table(title=f"Cycle {report.cycle}")
    table.add_column("Policy")
    table.add_column("Action")
    table.add_column("Diagnoses")
    for policy_id, actions in report.actions.items():
        if not actions:
            table.add_row(policy_id, "[dim]none[/dim]", "")
        for a in actions:
            d = a.to_dict() if hasattr(a, "to_dict") else {"action_type": repr(a), "diagnoses": []}
            table.add_row(policy_id, d["action_type"], ", ".join(d["diagnoses"]))
    for policy_id, error in report.failures.items():
        table.add_row(policy_id, "[red]failed[/red]", error)
    console.print(table)
    if report.skipped:
        console.print(f"[dim]Not due: {', '.join(report.skipped)}[/dim]")


async def _run_forever(executor: PoliciesExecutor) -> None:
    task = await executor.start()
    try:
        await task
    finally:
        await executor.stop()


def run_scheduler(path: str | None) -> None:
    """Run every registered policy on its own cadence until interrupted."""
    policies = _load_policies(path)
    console.print(Panel(f"Scheduling {len(policies)} health policies", style="bold green"))

    executor = PoliciesExecutor(policies)
    try:
        asyncio.run(_run_forever(executor))
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted, shutting down[/yellow]")
    finally:
        _close_policies(policies)


def run_check(path: str | None) -> None:
    """Run every due policy once and print the actions taken."""
    policies = _load_policies(path)
    executor = PoliciesExecutor(policies, isolate_failures=True)

    async def _once() -> CycleReport:
        try:
            return await executor.run_due_policies()
        finally:
            await executor.stop()

    try:
        report = asyncio.run(_once())
    finally:
        _close_policies(policies)
    _print_report(report)


def list_policies(path: str | None) -> None:
    registry = PolicyRegistry(Path(path) if path else None)
    table = Table(title=str(registry.path))
    table.add_column("Policy")
    table.add_column("Interval (s)", justify="right")
    table.add_column("Enabled")
    table.add_column("Stages")
    for d in registry.definitions:
        stages = f"{len(d.sensors)}/{len(d.detectors)}/{len(d.diagnosers)}/{len(d.resolvers)}"
        table.add_row(d.id, f"{d.interval_seconds:g}", "yes" if d.enabled else "no", stages)
    console.print(table)


def main() -> None:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--policies", help=f"Policy registry file (default: {settings.policies_file})")

    parser = argparse.ArgumentParser(description="healthloop policy scheduler")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("run", parents=[common], help="Run the scheduler until interrupted")
    sub.add_parser("check", parents=[common], help="Run all due policies once")
    sub.add_parser("list", parents=[common], help="List registered policies")

    args = parser.parse_args()

    if args.command == "run":
        run_scheduler(args.policies)
    elif args.command == "check":
        run_check(args.policies)
    elif args.command == "list":
        list_policies(args.policies)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
