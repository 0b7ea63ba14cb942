"""Issue ID allocation from the existing collection"""

import re
from typing import Iterable, Optional, Union

from ..models import Issue

DEFAULT_PREFIX = "BD-"

_TRAILING_DIGITS = re.compile(r"(\d+)$")


def extract_sequence_number(issue_id: str) -> Optional[int]:
    """Trailing run of decimal digits in an id, or None if there is none"""
    match = _TRAILING_DIGITS.search(issue_id)
    return int(match.group(1)) if match else None


def max_sequence_number(ids: Iterable[Union[str, Issue]]) -> int:
    """Global maximum over every id's numeric suffix (0 when none has one)

    Prefixes are ignored on purpose: short sequential ids and
    timestamp-derived ids share one number space.
    """
    highest = 0
    for item in ids:
        issue_id = item.id if isinstance(item, Issue) else item
        number = extract_sequence_number(issue_id)
        if number is not None and number > highest:
            highest = number
    return highest


def generate_issue_id(ids: Iterable[Union[str, Issue]], prefix: str = DEFAULT_PREFIX) -> str:
    """Next safe id: ``prefix`` followed by the global maximum plus one"""
    return f"{prefix}{max_sequence_number(ids) + 1}"
