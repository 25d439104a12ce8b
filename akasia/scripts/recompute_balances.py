"""Check and repair derived ledger and spending state.

Run with:
    python -m akasia.scripts.recompute_balances --check-only
    python -m akasia.scripts.recompute_balances
    python -m akasia.scripts.recompute_balances --tasks

Steps:
    1. Compare the latest stored balance snapshot with the recomputed total
    2. Rewrite every balance snapshot (skipped with --check-only)
    3. Recompute every spending task status (--tasks)
"""

import argparse
import asyncio

from sqlmodel import select

from akasia.core.logging import setup_logging
from akasia.db.engine import close_db, get_session
from akasia.models.spending import SpendingTask
from akasia.services.ledger_service import LedgerService
from akasia.services.spending_service import SpendingService
from akasia.utils.helpers import format_amount


async def check_action() -> bool:
    """Print the consistency report. Returns True when consistent."""
    async with get_session() as db:
        report = (await LedgerService(db).check_consistency()).unwrap()

    print(f"Entries:             {report.entries}")
    stored = format_amount(report.last_stored_balance) if report.last_stored_balance is not None else "-"
    print(f"Last stored balance: {stored}")
    print(f"Calculated balance:  {format_amount(report.calculated_balance)}")
    print(f"Drifted snapshots:   {report.drifted}")
    print("Consistent:          " + ("yes" if report.is_consistent else "NO"))
    return report.is_consistent


async def recompute_action() -> None:
    """Rewrite every balance snapshot."""
    async with get_session() as db:
        summary = (await LedgerService(db).recompute_all()).unwrap()

    print(
        f"Recomputed {summary.entries} entries, {summary.updated} updated, "
        f"final balance {format_amount(summary.final_balance)}"
    )


async def recompute_tasks_action() -> None:
    """Recompute status and pending settlements of every spending task."""
    async with get_session() as db:
        result = await db.execute(select(SpendingTask.id).order_by(SpendingTask.id))
        task_ids = list(result.scalars().all())
        service = SpendingService(db)
        for task_id in task_ids:
            (await service.recompute_task(task_id)).unwrap()

    print(f"Recomputed {len(task_ids)} spending tasks")


async def main(args: argparse.Namespace) -> None:
    """Main entry point."""
    try:
        consistent = await check_action()
        if not args.check_only:
            if consistent:
                print("Ledger already consistent, rewriting snapshots anyway")
            await recompute_action()
        if args.tasks:
            await recompute_tasks_action()
    finally:
        await close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ledger balance check and recompute")
    parser.add_argument(
        "--check-only",
        action="store_true",
        help="Only report consistency, do not rewrite snapshots",
    )
    parser.add_argument(
        "--tasks",
        action="store_true",
        help="Also recompute spending task statuses",
    )
    setup_logging()
    asyncio.run(main(parser.parse_args()))
