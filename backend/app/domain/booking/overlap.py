"""
Half-open interval overlap.

Windows are [start, end): a booking ending at 11:00 and one starting at
11:00 do not collide.
"""

from datetime import datetime

from sqlalchemy import and_


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Return True if [start_a, end_a) and [start_b, end_b) intersect."""
    return start_a < end_b and start_b < end_a


def overlap_clause(start_column, end_column, start: datetime, end: datetime):
    """SQL form of ``overlaps(start_column, end_column, start, end)``."""
    return and_(start_column < end, end_column > start)
