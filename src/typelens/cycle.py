from contextlib import contextmanager
from typing import Any, Hashable, Iterator


class CycleGuard:
    """
    Type identities currently being expanded. One guard per top-level
    resolution call.
    """

    def __init__(self) -> None:
        self._active: set[Hashable] = set()

    def enter(self, identity: Hashable) -> bool:
        """Register `identity`; False if it is already being expanded."""
        if identity in self._active:
            return False
        self._active.add(identity)
        return True

    def leave(self, identity: Hashable) -> None:
        self._active.discard(identity)

    def __contains__(self, identity: Any) -> bool:
        return identity in self._active

    def __len__(self) -> int:
        return len(self._active)

    @contextmanager
    def expanding(self, identity: Hashable) -> Iterator[bool]:
        """
        Context manager form of `enter`/`leave`. Yields False on re-entry,
        in which case nothing is registered or released.
        """
        entered = self.enter(identity)
        try:
            yield entered
        finally:
            if entered:
                self.leave(identity)
