"""
Data Validators - Transform Layer

Pure functions for validating flattened change rows.
"""

import polars as pl
from .schemas import CHANGE_ROWS_SCHEMA
import logging

logger = logging.getLogger(__name__)


def validate_change_rows_schema(df: pl.DataFrame) -> bool:
    """
    Validate change rows match the expected schema

    Args:
        df: Flattened change rows

    Returns:
        bool: True if valid, raises exception if invalid
    """
    if df.schema != CHANGE_ROWS_SCHEMA:
        raise ValueError(
            f"Schema mismatch: expected {CHANGE_ROWS_SCHEMA}, got {df.schema}"
        )

    # Check for null values in required fields
    required_fields = ["user_id", "username", "change_id", "date_label"]
    for field in required_fields:
        null_count = df.select(pl.col(field).is_null().sum()).item()
        if null_count > 0:
            raise ValueError(
                f"Null values found in required field '{field}': {null_count}"
            )

    logger.debug(f"Change rows validation passed: {df.height} records")
    return True
