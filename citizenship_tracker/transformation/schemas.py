"""
Transformation Layer Schemas

Schema of the flattened change rows: one row per citizenship change.
"""

import polars as pl

CHANGE_ROWS_SCHEMA = pl.Schema(
    [
        ("user_id", pl.String()),
        ("username", pl.String()),
        ("change_id", pl.String()),
        ("from_country_id", pl.String()),
        ("to_country_id", pl.String()),
        ("from_country_name", pl.String()),
        ("to_country_name", pl.String()),
        ("date_raw", pl.String()),
        ("date", pl.Datetime("us")),
        ("date_label", pl.String()),
    ]
)
