from __future__ import annotations

from collections.abc import Iterable

from .models import Record


def diff(previous: Iterable[Record], current: Iterable[Record]) -> list[Record]:
    """
    Records in `current` whose trimmed name appears in no `previous` record.

    Order follows `current`. Price and link are ignored: a record whose name
    was already seen is never new.
    """
    seen = {p.key for p in previous}
    return [c for c in current if c.key not in seen]
