"""ingredient-rollup — Consolidate recipe ingredient spreadsheets into purchase summaries."""

__version__ = "0.2.0"

CANONICAL_UNITS: list[str] = ["KG", "G", "L", "ML", "UN", "CX", "PCT", "MC", "FR"]
RECORD_FIELDS: list[str] = ["date", "recipe", "ingredient", "quantity", "unit", "category", "code"]
