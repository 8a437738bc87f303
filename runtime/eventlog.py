from typing import List, Tuple

from combat.model import Event


class EventLog:
    """Battle events kept for polling clients.

    Offsets are absolute and keep counting across clear(), so a client polling
    with an offset from the previous battle just receives nothing until new
    events arrive.
    """

    def __init__(self):
        self._events: List[Event] = []
        self._base = 0  # absolute offset of _events[0]

    def __len__(self) -> int:
        return len(self._events)

    @property
    def next_offset(self) -> int:
        return self._base + len(self._events)

    def append_many(self, evts: List[Event]) -> int:
        """Append events and return the offset after the last one."""
        self._events.extend(evts)
        return self.next_offset

    def since(self, offset: int, limit: int = 1000) -> Tuple[List[Event], int]:
        idx = max(0, offset - self._base)
        chunk = self._events[idx: idx + limit]
        return chunk, self._base + idx + len(chunk)

    def clear(self) -> None:
        """Drop the stored events of a finished battle."""
        self._base = self.next_offset
        self._events.clear()
