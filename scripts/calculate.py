"""Command-line tax calculation against the bundled or database reference data.

Usage:
    # Tax on $50,000 in 2024-25
    python scripts/calculate.py 50000 --year 2024-25

    # Same income across several years, in the order given
    python scripts/calculate.py 50000 --compare 2023-24 2024-25

    # Last five known years, most recent first
    python scripts/calculate.py 50000 --history 5

    # Read reference data from PostgreSQL instead of the bundled constants
    python scripts/calculate.py 50000 --year 2024-25 --db
"""

import argparse
import asyncio
import json
import logging
import sys
from decimal import Decimal
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.cache import BracketCache
from src.db.models import TaxCalculationRequest, TaxCalculationResult
from src.db.repository import InMemoryReferenceData, PostgresReferenceData, ReferenceDataSource
from src.db.session import close_pool, get_pool
from src.errors import TaxEngineError
from src.tax_service import TaxService


def _income(value: str) -> Decimal:
    try:
        return Decimal(value)
    except ArithmeticError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Calculate personal income tax")
    parser.add_argument("income", type=_income, help="Taxable income")
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--year", help="Financial year, e.g. 2024-25")
    mode.add_argument("--compare", nargs="+", metavar="YEAR", help="Financial years to compare")
    mode.add_argument("--history", type=int, metavar="N", help="Number of recent years")
    parser.add_argument("--db", action="store_true", help="Use PostgreSQL reference data")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    return parser.parse_args()


async def run(args: argparse.Namespace) -> list[TaxCalculationResult]:
    source: ReferenceDataSource
    if args.db:
        source = PostgresReferenceData(await get_pool())
    else:
        source = InMemoryReferenceData.from_tax_data()
    service = TaxService(BracketCache(source))

    try:
        if args.year:
            request = TaxCalculationRequest(taxable_income=args.income, financial_year=args.year)
            return [await service.calculate(request)]
        if args.compare:
            return await service.compare_across_years(args.income, args.compare)
        return await service.get_history(args.income, args.history)
    finally:
        await close_pool()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    try:
        results = asyncio.run(run(args))
    except TaxEngineError as exc:
        print(json.dumps(exc.to_dict(), indent=2), file=sys.stderr)
        sys.exit(1)

    print(json.dumps([r.model_dump(mode="json") for r in results], indent=2))


if __name__ == "__main__":
    main()
