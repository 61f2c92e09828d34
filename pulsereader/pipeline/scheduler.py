"""Source selection for round-robin fairness across runs."""

from datetime import datetime, timezone
from typing import Iterable, List

from ..models import Source

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _fairness_key(source: Source):
    # Never-fetched sources sort first, then least recently fetched
    fetched = source.last_fetched_at
    return (
        fetched is not None,
        _aware(fetched) if fetched is not None else _EPOCH,
        source.name,
        source.id or 0,
    )


def select_sources(sources: Iterable[Source], max_sources: int) -> List[Source]:
    """Pick up to max_sources active sources, least recently fetched first."""
    active = [s for s in sources if s.is_active]
    return sorted(active, key=_fairness_key)[:max(max_sources, 0)]
