"""
Diff fetched history against a subject's checkpoint.

Policy, for a window fetched newest first:

    no checkpoint yet            -> only the newest event is new
    checkpoint at position i     -> positions 0..i-1 are new
    checkpoint not in the window -> the `missing_backlog` newest events are new
    empty window                 -> nothing is new, checkpoint stays put

New events come back oldest first so notifications are created in the order
the commits happened. The cursor to persist is always the newest fetched id.
"""

from typing import List, NamedTuple, Optional, Sequence
from schemas.events import ExternalEvent

DEFAULT_MISSING_BACKLOG = 5


class Resolution(NamedTuple):
    new_events: List[ExternalEvent]
    latest_event_id: Optional[str]
    checkpoint_found: Optional[bool] = None


def resolve(
    fetched: Sequence[ExternalEvent],
    last_seen_id: Optional[str],
    missing_backlog: int = DEFAULT_MISSING_BACKLOG
) -> Resolution:
    if missing_backlog < 1:
        raise ValueError("missing_backlog must be at least 1")

    if not fetched:
        return Resolution(new_events=[], latest_event_id=None)

    latest_event_id = fetched[0].id

    if not last_seen_id:
        return Resolution(new_events=[fetched[0]], latest_event_id=latest_event_id)

    position = next(
        (index for index, event in enumerate(fetched) if event.id == last_seen_id),
        None
    )

    if position is None:
        # Checkpoint scrolled out of the window; replay a bounded backlog only
        window = list(fetched[:missing_backlog])
        window.reverse()
        return Resolution(new_events=window, latest_event_id=latest_event_id, checkpoint_found=False)

    window = list(fetched[:position])
    window.reverse()
    return Resolution(new_events=window, latest_event_id=latest_event_id, checkpoint_found=True)
