"""
Console Report - Load Layer

Renders change rows as a table, as a per-player overview and as a
per-player timeline. Rows can also be exported to parquet or csv.
"""

import os
import polars as pl
from typing import Dict, List
from ..extract.schemas import Country, profile_url_for
from ..transformation.transformers import ChangeGroup, sort_by_date
import logging

logger = logging.getLogger(__name__)

TABLE_COLUMNS = ["date_label", "username", "from", "to"]
UNKNOWN_COUNTRY = "Unknown"


def _with_country_labels(df: pl.DataFrame) -> pl.DataFrame:
    return df.with_columns(
        [
            pl.coalesce(
                pl.col("from_country_name"),
                pl.col("from_country_id"),
                pl.lit(UNKNOWN_COUNTRY),
            ).alias("from"),
            pl.coalesce(
                pl.col("to_country_name"),
                pl.col("to_country_id"),
                pl.lit(UNKNOWN_COUNTRY),
            ).alias("to"),
        ]
    )


def render_table(df: pl.DataFrame) -> str:
    """Change rows as a plain text table"""
    table_df = _with_country_labels(df).select(TABLE_COLUMNS)
    with pl.Config(tbl_rows=-1, fmt_str_lengths=60, tbl_hide_dataframe_shape=True):
        return str(table_df)


def render_overview(groups: List[ChangeGroup]) -> str:
    """One block per player, in group order"""
    blocks = []
    for group in groups:
        header = (
            f"{group.username} ({group.count} change"
            f"{'s' if group.count != 1 else ''}) {profile_url_for(group.user_id)}"
        )
        blocks.append(f"{header}\n{render_table(group.rows)}")
    return "\n\n".join(blocks)


def render_timeline(group: ChangeGroup) -> str:
    """Chronological from -> to steps of one player"""
    rows = _with_country_labels(sort_by_date(group.rows))
    lines = [f"{group.username} - {profile_url_for(group.user_id)}"]
    for row in rows.iter_rows(named=True):
        lines.append(f"  {row['date_label']:<19}  {row['from']} -> {row['to']}")
    return "\n".join(lines)


def render_countries(countries: List[Country]) -> str:
    """Country list as a plain text table"""
    df = pl.DataFrame(
        {
            "id": [c.id for c in countries],
            "name": [c.name for c in countries],
            "code": [c.code for c in countries],
            "flag_url": [c.flag_url for c in countries],
        },
        schema={
            "id": pl.String(),
            "name": pl.String(),
            "code": pl.String(),
            "flag_url": pl.String(),
        },
    ).sort("name")
    with pl.Config(tbl_rows=-1, fmt_str_lengths=60, tbl_hide_dataframe_shape=True):
        return str(df)


def export_rows(df: pl.DataFrame, path: str) -> str:
    """
    Write change rows to disk, format chosen by file suffix

    Args:
        df: Change rows
        path: Target .parquet or .csv file

    Returns:
        str: The written path
    """
    suffix = os.path.splitext(path)[1].lower()
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    if suffix == ".parquet":
        df.write_parquet(path)
    elif suffix == ".csv":
        df.write_csv(path)
    else:
        raise ValueError(f"Unsupported export format: {suffix or path}")

    logger.info(f"✅ Saved {df.height} change rows to {path}")
    return path


def summarize_counts(counts: Dict[str, int]) -> str:
    return ", ".join(f"{key}={value}" for key, value in counts.items())
