"""
WarEra citizenship tracker.

Fetches a country's roster from the WarEra API, keeps the players that
connected recently, pulls their citizenship-change logs and presents them
as a filterable table or per-player timeline.
"""

__version__ = "0.1.0"
