"""Command line entry point.

Usage:
    # Match a statement and print the result
    python -m transactwise --user-id U --company-id C match statement.xlsx

    # Match, confirm every row and export the confirmed rows
    python -m transactwise --user-id U --company-id C match statement.csv \\
        --confirm-all --export confirmed.xlsx

    # Link vendors and customers to their default accounts
    python -m transactwise --user-id U --company-id C interlink

    # Create a starting chart of accounts
    python -m transactwise --user-id U --company-id C suggest-coa "Coffee shop"
"""

import argparse
import asyncio
import sys

import structlog

from transactwise.config import configure_logging, get_settings
from transactwise.errors import DocumentStoreError, TransactWiseError
from transactwise.models import ReviewedTransaction
from transactwise.session import BookkeepingSession
from transactwise.store import CompanyScope, FirestoreDocumentStore

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="transactwise",
        description="Match bank transactions to vendors, customers and accounts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  match        Match a CSV/XLSX statement against the company's records
  interlink    Link vendors and customers to their default accounts
  suggest-coa  Create a starting chart of accounts for an industry

Documents are read from and written to Firestore (FIRESTORE_PROJECT_ID).
        """,
    )
    parser.add_argument("--user-id", required=True, help="Owning user id")
    parser.add_argument("--company-id", required=True, help="Company id")

    commands = parser.add_subparsers(dest="command", required=True)

    match = commands.add_parser("match", help="Match a statement file")
    match.add_argument("file", help="Statement file (.csv or .xlsx)")
    match.add_argument(
        "--confirm-all",
        action="store_true",
        help="Persist every matched row after matching",
    )
    match.add_argument("--export", metavar="OUT", help="Export confirmed rows to OUT")

    commands.add_parser("interlink", help="Link entities to default accounts")

    suggest = commands.add_parser("suggest-coa", help="Create a starting chart of accounts")
    suggest.add_argument("industry", nargs="+", help="Industry of the business")

    return parser


def format_rows(rows: list[ReviewedTransaction]) -> str:
    lines = [f"{'ROW':<10} {'STATUS':<10} {'AMOUNT':>12}  {'ENTITY':<24} {'ACCOUNT':<30} TEXT"]
    for row in rows:
        lines.append(
            f"{row.id:<10} {row.status.value:<10} {row.raw.amount:>12}  "
            f"{(row.matched_entity_name or '-')[:24]:<24} "
            f"{(row.matched_account_name or '-')[:30]:<30} {row.raw.matching_text}"
        )
    return "\n".join(lines)


async def run_match(session: BookkeepingSession, args: argparse.Namespace) -> None:
    session.upload_transactions(args.file)
    rows = await session.run_matching()
    print(format_rows(rows))

    if args.confirm_all:
        report = await session.confirm_all()
        print(f"\nConfirmed {report.succeeded} of {report.attempted} transactions")
        if report.error is not None:
            print(f"Stopped early: {report.error}", file=sys.stderr)

    if args.export:
        path = session.export_confirmed(args.export)
        print(f"Exported confirmed transactions to {path}")


async def run_interlink(session: BookkeepingSession) -> None:
    report = await session.run_interlink()
    print(f"Linked {report.succeeded} of {report.attempted} entities")
    if report.error is not None:
        print(f"Stopped early: {report.error}", file=sys.stderr)


async def run_suggest_coa(session: BookkeepingSession, industry: str) -> None:
    report = await session.seed_chart_of_accounts(industry)
    for account in report.committed:
        print(f"{account.account_type or '':<10} {account.account_name}")
    print(f"\nCreated {report.succeeded} accounts")
    if report.error is not None:
        print(f"Stopped early: {report.error}", file=sys.stderr)


async def main(argv: list[str] | None = None) -> int:
    """Run one command; returns the process exit code."""
    configure_logging()
    args = build_parser().parse_args(argv)

    if not get_settings().firestore_project_id:
        print("FIRESTORE_PROJECT_ID is not set; configure the document store first", file=sys.stderr)
        return 2

    scope = CompanyScope(user_id=args.user_id, company_id=args.company_id)
    logger.info("command_started", command=args.command, company_id=scope.company_id)

    try:
        async with FirestoreDocumentStore() as store:
            session = BookkeepingSession(scope, store)
            await session.open()

            if args.command == "match":
                await run_match(session, args)
            elif args.command == "interlink":
                await run_interlink(session)
            else:
                await run_suggest_coa(session, " ".join(args.industry))
    except KeyboardInterrupt:
        logger.info("command_interrupted")
        return 130
    except DocumentStoreError as e:
        logger.error("document_store_error", error=str(e), status_code=e.status_code)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except TransactWiseError as e:
        logger.error("command_failed", error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
