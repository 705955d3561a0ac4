"""
Tracks which coordinates have already been claimed during a walk.
"""

import asyncio


class VisitTracker:
    """
    Append-only set of coordinate keys with an atomic check-and-insert.

    A key is claimed before any fetch for it starts, so two concurrent branches
    reaching the same coordinate never both fetch it.
    """

    def __init__(self):
        self._visited: set[str] = set()
        self._lock = asyncio.Lock()

    async def mark(self, key: str) -> bool:
        """
        Claims a key.

        Returns:
            True if the key was new and is now claimed, False if it was already seen.
        """
        async with self._lock:
            if key in self._visited:
                return False
            self._visited.add(key)
            return True

    def __contains__(self, key: str) -> bool:
        return key in self._visited

    def __len__(self) -> int:
        return len(self._visited)

    def snapshot(self) -> frozenset[str]:
        return frozenset(self._visited)
