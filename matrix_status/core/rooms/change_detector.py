from collections.abc import Sequence

from ..client.event_types import Room


def lists_equal(previous: Sequence[Room], current: Sequence[Room]) -> bool:
    """
    Whether two visible room lists would render identically

    Lists arrive sorted, so comparing index by index also catches reordering.
    """
    if len(previous) != len(current):
        return False

    for a, b in zip(previous, current):
        if (
            a.id != b.id
            or a.unread != b.unread
            or a.name != b.name
            or a.encrypted != b.encrypted
            or a.avatar_url != b.avatar_url
        ):
            return False
    return True
