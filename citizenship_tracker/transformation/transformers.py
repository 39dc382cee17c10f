"""
Data Transformers - Presentation Transform Layer

Pure functions turning per-player change logs into flat rows and deriving
sorted, filtered and grouped views over them.
"""

import polars as pl
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Optional
from ..coreutils.time import format_label, parse_timestamp
from .schemas import CHANGE_ROWS_SCHEMA
import logging

logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59, 59, 999000)


@dataclass
class ChangeGroup:
    """Rows of one username in overview mode"""

    username: str
    user_id: str
    rows: pl.DataFrame

    @property
    def count(self) -> int:
        return self.rows.height


def flatten_changes(
    players: Iterable[Any],
    country_names: Optional[Dict[str, str]] = None,
) -> pl.DataFrame:
    """
    Flatten per-player change logs into one row per change

    Args:
        players: Objects with `user_id`, `username` and `changes`
            (normalized CitizenshipChange records)
        country_names: Optional country id -> display name lookup used when
            the payload carries no name

    Returns:
        pl.DataFrame: Rows with CHANGE_ROWS_SCHEMA
    """
    names = country_names or {}
    rows: Dict[str, List[Any]] = {column: [] for column in CHANGE_ROWS_SCHEMA.names()}

    for player in players:
        for change in player.changes:
            date_raw = change.timestamp or change.created_at or ""
            parsed = parse_timestamp(date_raw)

            rows["user_id"].append(player.user_id)
            rows["username"].append(player.username)
            rows["change_id"].append(change.id)
            rows["from_country_id"].append(change.from_country_id)
            rows["to_country_id"].append(change.to_country_id)
            rows["from_country_name"].append(
                change.from_country_name or names.get(change.from_country_id or "")
            )
            rows["to_country_name"].append(
                change.to_country_name or names.get(change.to_country_id or "")
            )
            rows["date_raw"].append(date_raw)
            rows["date"].append(parsed)
            rows["date_label"].append(format_label(parsed))

    df = pl.DataFrame(rows, schema=CHANGE_ROWS_SCHEMA)
    logger.info(f"Flattened {df.height} citizenship changes")
    return df


def sort_by_date(df: pl.DataFrame, descending: bool = False) -> pl.DataFrame:
    """
    Sort rows by parsed date, keeping the prior order of ties

    Rows with an invalid date sort after every date, so they come last
    ascending and first descending.
    """
    logger.debug(f"Sorting changes by date (descending={descending})")
    return df.sort(
        "date", descending=descending, nulls_last=not descending, maintain_order=True
    )


def filter_changes(
    df: pl.DataFrame,
    from_country_id: Optional[str] = None,
    to_country_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> pl.DataFrame:
    """
    Apply the optional filters as a logical AND

    Args:
        df: Change rows
        from_country_id: Exact match on the source country
        to_country_id: Exact match on the destination country
        start_date: Inclusive, from 00:00:00.000 local time
        end_date: Inclusive, up to 23:59:59.999 local time

    Returns:
        pl.DataFrame: Rows satisfying every given filter
    """
    conditions = []
    if from_country_id:
        conditions.append(pl.col("from_country_id") == from_country_id)
    if to_country_id:
        conditions.append(pl.col("to_country_id") == to_country_id)
    if start_date:
        conditions.append(pl.col("date") >= datetime.combine(start_date, time.min))
    if end_date:
        conditions.append(pl.col("date") <= datetime.combine(end_date, END_OF_DAY))

    if not conditions:
        return df

    filtered_df = df.filter(*conditions)
    logger.info(f"Filtered {df.height} changes down to {filtered_df.height}")
    return filtered_df


def group_by_username(df: pl.DataFrame) -> List[ChangeGroup]:
    """
    Group rows by username in order of first appearance

    Each group keeps the user id of its first row and its rows in their
    incoming order.
    """
    if df.is_empty():
        return []

    groups = [
        ChangeGroup(
            username=part["username"][0],
            user_id=part["user_id"][0],
            rows=part,
        )
        for part in df.partition_by("username", maintain_order=True)
    ]
    logger.debug(f"Grouped {df.height} changes into {len(groups)} players")
    return groups


def build_view(
    df: pl.DataFrame,
    from_country_id: Optional[str] = None,
    to_country_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    descending: bool = False,
) -> pl.DataFrame:
    """Filter then sort, the order the table view applies them in"""
    filtered_df = filter_changes(
        df,
        from_country_id=from_country_id,
        to_country_id=to_country_id,
        start_date=start_date,
        end_date=end_date,
    )
    return sort_by_date(filtered_df, descending=descending)


def get_summary_stats(df: pl.DataFrame) -> Dict[str, Any]:
    """
    Summary statistics over change rows

    Args:
        df: Change rows

    Returns:
        Dict: Summary statistics
    """
    dated = df.filter(pl.col("date").is_not_null())
    date_range = None
    if dated.height:
        date_range = (
            f"{dated.select('date').min().item():%Y-%m-%d} to "
            f"{dated.select('date').max().item():%Y-%m-%d}"
        )

    stats = {
        "total_changes": df.height,
        "unique_players": df.select("user_id").n_unique(),
        "unique_from_countries": df.select("from_country_id").drop_nulls().n_unique(),
        "unique_to_countries": df.select("to_country_id").drop_nulls().n_unique(),
        "invalid_dates": df.height - dated.height,
        "date_range": date_range,
    }
    logger.debug(f"Generated summary stats: {list(stats.keys())}")
    return stats
