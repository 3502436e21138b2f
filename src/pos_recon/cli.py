"""
Command-line interface for POS Recon.
"""

import argparse
import json
import os
import sys
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from . import __version__
from .reporting.aggregation import ORDER_STATUSES, Dimension, ReportFilters
from .reporting.errors import OrderStoreUnavailable, ReconciliationError
from .reporting.pagination import SORT_FIELDS
from .reporting.repository import OrderRepository
from .reporting.service import ReportService
from .reporting.timeutils import DateRange
from .utils.config import Config
from .utils.logging import setup_logging

EXIT_STORE_UNAVAILABLE = 2


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--start", required=True, help="First day of the range (YYYY-MM-DD)")
    parser.add_argument("--end", required=True, help="Last day of the range (YYYY-MM-DD)")
    parser.add_argument(
        "--orders-file",
        help="JSON snapshot of orders (reads the Order Store when omitted)",
    )
    parser.add_argument("--items-file", help="JSON list of order items referencing orderId")
    parser.add_argument(
        "--env",
        type=str,
        choices=["staging", "production", "stg", "prod"],
        default="staging",
        help="Order Store environment (default: staging)",
    )
    parser.add_argument("--category", help="Only items in this category")
    parser.add_argument("--search", help="Product name or SKU search")
    parser.add_argument("--employee", help="Employee id or name")
    parser.add_argument("--customer", help="Customer id or name")
    parser.add_argument("--floor", help="Only orders at tables on this floor")
    parser.add_argument(
        "--tables-file",
        help="JSON table catalog for --floor with a snapshot: {tableId: floor} or [{id, floor}]",
    )
    parser.add_argument("--channel", choices=["dine-in", "takeaway"], help="Sales channel")
    parser.add_argument(
        "--status",
        action="append",
        choices=sorted(ORDER_STATUSES),
        help="Override the report's status policy (repeatable)",
    )
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        description="POS Recon - order reconciliation and sales report aggregation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pos-recon --version
  pos-recon report --dimension date --start 2026-10-01 --end 2026-10-17
  pos-recon report --dimension product --category Drinks --start 2026-10-01 --end 2026-10-17 --env prod
  pos-recon summary --start 2026-10-01 --end 2026-10-17 --orders-file orders.json
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"POS Recon {__version__}",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    parser.add_argument(
        "--log-file",
        help="Log file path",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
    )

    report_parser = subparsers.add_parser(
        "report",
        help="Aggregate orders by one dimension and print a page",
    )
    report_parser.add_argument(
        "--dimension",
        choices=[d.value for d in Dimension],
        default=Dimension.DATE.value,
        help="Grouping axis (default: date)",
    )
    report_parser.add_argument("--sort", choices=SORT_FIELDS, help="Sort field (default depends on dimension)")
    report_parser.add_argument("--ascending", action="store_true", help="Sort ascending")
    report_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    report_parser.add_argument("--page-size", type=int, help="Rows per page")
    _add_source_arguments(report_parser)

    summary_parser = subparsers.add_parser(
        "summary",
        help="Period overview: revenue, customers, averages and peak hour",
    )
    _add_source_arguments(summary_parser)

    return parser


def _load_json_list(path: str) -> List[Dict[str, Any]]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("orders") or data.get("items") or []
    if not isinstance(data, list):
        raise ReconciliationError(f"{path} does not contain a JSON list")
    return data


def build_service(parsed_args: argparse.Namespace, config: Config) -> ReportService:
    """Build a service over a snapshot file or the environment's Order Store."""
    tolerance = config.get("payment_tolerance", 1.0)
    if parsed_args.orders_file:
        orders = _load_json_list(parsed_args.orders_file)
        items = _load_json_list(parsed_args.items_file) if parsed_args.items_file else None
        return ReportService(orders=orders, items=items, tolerance=tolerance)

    load_dotenv(".env")
    env_key = "prod" if parsed_args.env.lower() in ("production", "prod") else "stg"
    db_name = os.getenv(f"DB_NAME_{env_key.upper()}") or os.getenv("DB_NAME")
    repository = OrderRepository(
        db_name=db_name,
        connection_url_env_key=f"DB_CONNECTION_URL_{env_key.upper()}",
        config=config,
    )
    return ReportService(repository=repository, tolerance=tolerance)


def _load_table_floors(path: str) -> Dict[Any, Any]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        return data
    if isinstance(data, list):
        return {table.get("id"): table.get("floor") for table in data if isinstance(table, dict)}
    raise ReconciliationError(f"{path} does not contain a table catalog")


def build_filters(parsed_args: argparse.Namespace) -> ReportFilters:
    table_floors: Dict[Any, Any] = {}
    if parsed_args.tables_file:
        table_floors = _load_table_floors(parsed_args.tables_file)
    elif parsed_args.floor and parsed_args.orders_file:
        raise ReconciliationError("--floor with --orders-file needs --tables-file to locate tables")
    return ReportFilters(
        category=parsed_args.category,
        product_search=parsed_args.search,
        employee=parsed_args.employee,
        customer=parsed_args.customer,
        statuses=parsed_args.status,
        floor=parsed_args.floor,
        channel=parsed_args.channel,
        table_floors=table_floors,
    )


def _fmt_money(value: float) -> str:
    return f"{value:,.0f}"


def print_report(result: Dict[str, Any]) -> None:
    """Render a report page as a fixed-width table."""
    header = f"{'Key':<24}{'Orders':>8}{'Gross':>16}{'Discount':>14}{'Net revenue':>16}{'Tax':>14}{'Paid':>16}"
    print(f"\n{result['dimension'].upper()} REPORT {result['range']['start']} .. {result['range']['end']}")
    print("=" * len(header))
    print(header)
    print("-" * len(header))

    rows = result["page"] + [dict(result["grandTotal"], label="TOTAL")]
    for i, row in enumerate(rows):
        if i == len(rows) - 1:
            print("-" * len(header))
        label = str(row.get("label") or row.get("key"))[:23]
        print(
            f"{label:<24}{row['orderCount']:>8}{_fmt_money(row['grossAmount']):>16}"
            f"{_fmt_money(row['discount']):>14}{_fmt_money(row['netRevenue']):>16}"
            f"{_fmt_money(row['tax']):>14}{_fmt_money(row['customerPaid']):>16}"
        )

    methods = result["grandTotal"].get("paymentMethodTotals", {})
    if methods:
        print("\nPAYMENT METHODS:")
        for method, amount in methods.items():
            print(f"   {method:<20}{_fmt_money(amount):>16}")
    if result["grandTotal"].get("cancelledOrders"):
        print(
            f"\nCancelled: {result['grandTotal']['cancelledOrders']} orders, "
            f"{_fmt_money(result['grandTotal']['cancelledRevenue'])}"
        )
    print(f"\nPage {result['pageNumber']}/{result['totalPages']} ({result['totalCount']} rows)")


def print_summary(result: Dict[str, Any]) -> None:
    print(f"\nPERIOD SUMMARY {result['range']['start']} .. {result['range']['end']}")
    print("=" * 60)
    print(f"   Orders:                 {result['orderCount']}")
    print(f"   Unique customers:       {result['uniqueCustomerCount']}")
    print(f"   Gross amount:           {_fmt_money(result['grossAmount'])}")
    print(f"   Discount:               {_fmt_money(result['discount'])}")
    print(f"   Net revenue:            {_fmt_money(result['netRevenue'])}")
    print(f"   Tax:                    {_fmt_money(result['tax'])}")
    print(f"   Customer paid:          {_fmt_money(result['customerPaid'])}")
    print(f"   Daily average revenue:  {_fmt_money(result['dailyAverageRevenue'])}")
    print(f"   Average order value:    {_fmt_money(result['averageOrderValue'])}")
    print(f"   Peak hour:              {result['peakHour']:02d}:00")


def run_command(parsed_args: argparse.Namespace, config: Config) -> None:
    date_range = DateRange(parsed_args.start, parsed_args.end)
    service = build_service(parsed_args, config)
    filters = build_filters(parsed_args)

    if parsed_args.command == "report":
        sort = None
        if parsed_args.sort:
            sort = (parsed_args.sort, not parsed_args.ascending)
        result = service.report(
            parsed_args.dimension,
            date_range,
            filters=filters,
            sort=sort,
            page=parsed_args.page,
            page_size=parsed_args.page_size or config.get("default_page_size", 20),
        )
        render = print_report
    else:
        result = service.summary(date_range, filters=filters)
        render = print_summary

    if parsed_args.json:
        print(json.dumps(result, indent=2, default=str))
    else:
        render(result)


def main(args: Optional[list] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    config = Config(".env") if os.path.exists(".env") else Config()
    log_level = "DEBUG" if parsed_args.verbose else config.get("log_level", "INFO")
    logger = setup_logging(level=log_level, log_file=parsed_args.log_file)

    if not parsed_args.command:
        parser.print_help()
        return 1

    try:
        run_command(parsed_args, config)
    except OrderStoreUnavailable as e:
        logger.error(f"Order Store unavailable, retry later: {e}")
        return EXIT_STORE_UNAVAILABLE
    except (ReconciliationError, ValueError, OSError) as e:
        logger.error(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
