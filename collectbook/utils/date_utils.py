"""Date manipulation utilities"""

from datetime import date, timedelta
from typing import List


def generate_date_range(start: date, end: date) -> List[date]:
    """Generate list of dates from start to end (inclusive); empty when start > end"""
    days = (end - start).days + 1
    return [start + timedelta(days=i) for i in range(max(days, 0))]


def dates_after(last: date, through: date) -> List[date]:
    """Dates strictly after `last`, up to and including `through`"""
    return generate_date_range(last + timedelta(days=1), through)
