"""Seed tax_brackets, tax_offsets and tax_levies from the bundled constants."""

import logging
import sys
from pathlib import Path

import psycopg2

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config.settings import settings
from src.calculators.tax_data import TAX_YEARS

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def main() -> None:
    """Replace reference data for every bundled financial year."""
    db_url = settings.database_url_sync
    conn = psycopg2.connect(db_url)
    cur = conn.cursor()

    for year, data in TAX_YEARS.items():
        # Delete existing rows for this year (idempotent re-seed)
        for table in ("tax_brackets", "tax_offsets", "tax_levies"):
            cur.execute(f"DELETE FROM {table} WHERE financial_year = %s", (year,))

        for bracket in data.brackets:
            cur.execute(
                """
                INSERT INTO tax_brackets (
                    financial_year, bracket_order, min_income, max_income,
                    tax_rate, fixed_amount, is_active
                ) VALUES (%s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    year,
                    bracket.bracket_order,
                    bracket.min_income,
                    bracket.max_income,
                    bracket.tax_rate,
                    bracket.fixed_amount,
                    bracket.is_active,
                ),
            )

        for offset in data.offsets:
            cur.execute(
                """
                INSERT INTO tax_offsets (
                    financial_year, name, lower_threshold, upper_threshold, amount, taper_rate
                ) VALUES (%s, %s, %s, %s, %s, %s)
                """,
                (
                    year,
                    offset.name,
                    offset.lower_threshold,
                    offset.upper_threshold,
                    offset.amount,
                    offset.taper_rate,
                ),
            )

        for levy in data.levies:
            cur.execute(
                """
                INSERT INTO tax_levies (
                    financial_year, name, rate, threshold, cap, shade_in_rate
                ) VALUES (%s, %s, %s, %s, %s, %s)
                """,
                (year, levy.name, levy.rate, levy.threshold, levy.cap, levy.shade_in_rate),
            )

        logger.info(
            "Seeded %s (%d brackets, %d offsets, %d levies)",
            year,
            len(data.brackets),
            len(data.offsets),
            len(data.levies),
        )

    conn.commit()
    cur.close()
    conn.close()
    logger.info("Seeded %d financial years.", len(TAX_YEARS))


if __name__ == "__main__":
    main()
