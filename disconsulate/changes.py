from __future__ import annotations

from typing import Iterable

from .selector import Endpoint


def changed(old: Iterable[Endpoint], new: Iterable[Endpoint]) -> bool:
    """True when the two collections differ as sets.

    The registry often returns the same members in a different order;
    that is not a change. Duplicates collapse.
    """
    return set(old) != set(new)
