"""
Seed arena: the store's single owned collection of seeds.

Seeds live in a dense list; a sparse id -> index map gives O(1) lookup.
Removal swaps the last seed into the freed slot, so iteration order is
insertion order only until the first removal.
"""

from typing import Dict, Iterator, List, Optional

from dharma.karma.core import Seed


class SeedArena:
    """Dense/sparse store of seeds keyed by id."""

    def __init__(self) -> None:
        self._dense: List[Seed] = []
        self._index: Dict[str, int] = {}

    def add(self, seed: Seed) -> None:
        """Insert a seed, replacing any seed with the same id."""
        slot = self._index.get(seed.id)
        if slot is not None:
            self._dense[slot] = seed
            return
        self._index[seed.id] = len(self._dense)
        self._dense.append(seed)

    def get(self, seed_id: str) -> Optional[Seed]:
        slot = self._index.get(seed_id)
        if slot is None:
            return None
        return self._dense[slot]

    def remove(self, seed_id: str) -> Optional[Seed]:
        """Remove and return a seed, or None if absent."""
        slot = self._index.pop(seed_id, None)
        if slot is None:
            return None

        removed = self._dense[slot]
        last = self._dense.pop()
        if last is not removed:
            self._dense[slot] = last
            self._index[last.id] = slot
        return removed

    def clear(self) -> None:
        self._dense.clear()
        self._index.clear()

    def snapshot(self) -> List[Seed]:
        """Copy of the dense list, safe to iterate while the arena changes."""
        return list(self._dense)

    def __contains__(self, seed_id: object) -> bool:
        return seed_id in self._index

    def __len__(self) -> int:
        return len(self._dense)

    def __iter__(self) -> Iterator[Seed]:
        return iter(self._dense)
