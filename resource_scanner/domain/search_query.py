"""Builds GitHub repository search queries."""
import calendar
import re
from datetime import date, datetime
from typing import Optional, Sequence


_PLAIN_QUALIFIER = re.compile(r"^[A-Za-z0-9_.+-]+$")


def subtract_months(moment: datetime, months: int) -> date:
    """Calendar-aware ``moment - months``, clamping the day to the month length."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _language_qualifier(language: str) -> str:
    if _PLAIN_QUALIFIER.match(language):
        return f"language:{language}"
    return f'language:"{language}"'


def build_search_query(
    terms: Sequence[str],
    languages: Sequence[str] = (),
    min_stars: Optional[int] = None,
    pushed_after: Optional[date] = None,
    include_archived: bool = False,
    include_forks: bool = False,
    sort: Optional[str] = "stars-desc"
) -> str:
    """Combine search terms and filters into a single search string.

    Terms are OR-combined; every filter becomes a search qualifier.

    Args:
        terms: Free-text search terms
        languages: Language hints, any of which may match
        min_stars: Minimum star count
        pushed_after: Only repositories pushed after this date
        include_archived: Whether archived repositories may match
        include_forks: Whether forks may match
        sort: Sort qualifier value (e.g. ``stars-desc``)

    Returns:
        Query string for the search API
    """
    parts = [" OR ".join(terms)]

    parts.extend(_language_qualifier(language) for language in languages)

    if min_stars:
        parts.append(f"stars:>={min_stars}")
    if pushed_after is not None:
        parts.append(f"pushed:>{pushed_after.isoformat()}")
    if not include_archived:
        parts.append("archived:false")
    if not include_forks:
        parts.append("fork:false")
    if sort:
        parts.append(f"sort:{sort}")

    return " ".join(part for part in parts if part)
