"""Create tax_brackets, tax_offsets and tax_levies reference tables."""

from yoyo import step

__depends__ = {}  # type: ignore[var-annotated]

steps = [
    step(
        """
        CREATE TABLE tax_brackets (
            id              UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            financial_year  TEXT NOT NULL,
            bracket_order   INTEGER NOT NULL CHECK (bracket_order >= 1),
            min_income      NUMERIC(12,2) NOT NULL CHECK (min_income >= 0),
            max_income      NUMERIC(12,2),
            tax_rate        NUMERIC(6,4) NOT NULL CHECK (tax_rate BETWEEN 0 AND 1),
            fixed_amount    NUMERIC(12,2) NOT NULL DEFAULT 0 CHECK (fixed_amount >= 0),
            is_active       BOOLEAN NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ DEFAULT NOW(),
            UNIQUE (financial_year, bracket_order)
        )
        """,
        "DROP TABLE IF EXISTS tax_brackets",
    ),
    step(
        """
        CREATE TABLE tax_offsets (
            id              UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            financial_year  TEXT NOT NULL,
            name            TEXT NOT NULL,
            lower_threshold NUMERIC(12,2),
            upper_threshold NUMERIC(12,2),
            amount          NUMERIC(12,2) NOT NULL CHECK (amount >= 0),
            taper_rate      NUMERIC(6,4) NOT NULL DEFAULT 0 CHECK (taper_rate >= 0),
            created_at      TIMESTAMPTZ DEFAULT NOW()
        )
        """,
        "DROP TABLE IF EXISTS tax_offsets",
    ),
    step(
        """
        CREATE TABLE tax_levies (
            id              UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            financial_year  TEXT NOT NULL,
            name            TEXT NOT NULL,
            rate            NUMERIC(6,4) NOT NULL CHECK (rate BETWEEN 0 AND 1),
            threshold       NUMERIC(12,2) NOT NULL DEFAULT 0,
            cap             NUMERIC(12,2),
            shade_in_rate   NUMERIC(6,4),
            created_at      TIMESTAMPTZ DEFAULT NOW()
        )
        """,
        "DROP TABLE IF EXISTS tax_levies",
    ),
    step(
        "CREATE INDEX idx_tax_offsets_year ON tax_offsets (financial_year)",
        "DROP INDEX IF EXISTS idx_tax_offsets_year",
    ),
    step(
        "CREATE INDEX idx_tax_levies_year ON tax_levies (financial_year)",
        "DROP INDEX IF EXISTS idx_tax_levies_year",
    ),
]
