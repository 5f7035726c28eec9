"""
Parsing of commit date expressions.

Two forms are understood:

* absolute timestamps such as ``2024-03-20 15:30:00``
* relative expressions such as ``2 days ago`` or ``1 Week ago``

Months are treated as 30 days and years as 365 days; the arithmetic is
not calendar aware. Anything else raises :class:`InvalidDateError`.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Optional

from commit_gen.models import CommitDates


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


ABSOLUTE_FORMAT = "%Y-%m-%d %H:%M:%S"

_RELATIVE_PATTERN = re.compile(
    r"^\s*(?P<amount>[+-]?\d+)\s+(?P<unit>[a-z]+?)s?\s+ago\s*$",
    re.IGNORECASE,
)

_UNIT_DELTAS = {
    "minute": timedelta(minutes=1),
    "hour": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}


class InvalidDateError(ValueError):
    """Raised when a date expression matches none of the accepted forms."""

    pass


def _invalid(expr: str, rule: str) -> InvalidDateError:
    return InvalidDateError(
        f"Invalid date '{expr}': {rule}. "
        "Use 'YYYY-MM-DD HH:MM:SS' or a relative form like '2 days ago'"
    )


def parse_date(expr: str, now: Optional[datetime] = None) -> datetime:
    """Turn a date expression into an absolute timestamp.

    Parameters
    ----------
    expr : str
        The expression to parse.
    now : datetime, optional
        Reference instant for relative expressions. Defaults to the
        current local time.

    Returns
    -------
    datetime
        The resolved timestamp. Absolute timestamps inherit ``now``'s
        timezone when ``now`` is timezone aware.

    Raises
    ------
    InvalidDateError
        If the expression is malformed, uses an unknown unit, or has a
        zero or negative amount.
    """
    if now is None:
        now = datetime.now()
    text = (expr or "").strip()
    if not text:
        raise _invalid(expr, "empty expression")

    try:
        parsed = datetime.strptime(text, ABSOLUTE_FORMAT)
    except ValueError:
        pass
    else:
        return parsed.replace(tzinfo=now.tzinfo)

    match = _RELATIVE_PATTERN.match(text)
    if not match:
        raise _invalid(expr, "unrecognized format")

    amount = int(match.group("amount"))
    unit = match.group("unit").lower()
    if unit not in _UNIT_DELTAS:
        raise _invalid(expr, f"unknown unit '{unit}'")
    if amount <= 0:
        raise _invalid(expr, "amount must be a positive integer")

    result = now - _UNIT_DELTAS[unit] * amount
    logger.debug("Resolved date expression %r to %s", expr, result)
    return result


def resolve_commit_dates(
    date: Optional[str] = None,
    author_date: Optional[str] = None,
    committer_date: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CommitDates:
    """Resolve the author and committer dates from CLI values.

    ``date`` applies to both timestamps; ``author_date`` and
    ``committer_date`` override it individually. Unspecified dates stay
    ``None`` so git uses the current time.
    """
    if now is None:
        now = datetime.now()
    author_expr = author_date if author_date is not None else date
    committer_expr = committer_date if committer_date is not None else date
    return CommitDates(
        author=parse_date(author_expr, now) if author_expr is not None else None,
        committer=parse_date(committer_expr, now) if committer_expr is not None else None,
    )


def format_git_date(value: datetime) -> str:
    """Render a timestamp in the ISO 8601 form git accepts."""
    return value.isoformat(timespec="seconds")
