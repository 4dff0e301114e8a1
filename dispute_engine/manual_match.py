"""
Manual match overrides: analyst-chosen (billback row, PPM row) pairs that
reconciliation treats as matched regardless of item codes.

Rows are identified by origin id (their index label in the uploaded table),
which stays the same whatever filter produced the current view.
"""

from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, Iterator, List, Tuple


@dataclass(frozen=True)
class MatchPair:
    billback_id: Hashable
    ppm_id: Hashable

    def to_dict(self) -> Dict[str, Hashable]:
        return {"billback_id": self.billback_id, "ppm_id": self.ppm_id}


class ManualMatchSet:
    """Ordered set of match pairs; adding an existing pair is a no-op."""

    def __init__(self, pairs: Iterable[Tuple[Hashable, Hashable]] = ()):
        self._pairs: List[MatchPair] = []
        for billback_id, ppm_id in pairs:
            self.add(billback_id, ppm_id)

    def add(self, billback_id: Hashable, ppm_id: Hashable) -> bool:
        """Add a pair. Returns False if it was already present."""
        pair = MatchPair(billback_id, ppm_id)
        if pair in self._pairs:
            return False
        self._pairs.append(pair)
        return True

    def remove(self, billback_id: Hashable, ppm_id: Hashable) -> bool:
        """Remove a pair. Returns False (set unchanged) if it was not matched."""
        pair = MatchPair(billback_id, ppm_id)
        if pair not in self._pairs:
            return False
        self._pairs.remove(pair)
        return True

    def clear(self):
        self._pairs.clear()

    def is_billback_matched(self, billback_id: Hashable) -> bool:
        return any(p.billback_id == billback_id for p in self._pairs)

    def is_ppm_matched(self, ppm_id: Hashable) -> bool:
        return any(p.ppm_id == ppm_id for p in self._pairs)

    def to_list(self) -> List[Dict[str, Hashable]]:
        return [p.to_dict() for p in self._pairs]

    def __contains__(self, pair) -> bool:
        return MatchPair(*pair) in self._pairs

    def __iter__(self) -> Iterator[Tuple[Hashable, Hashable]]:
        return iter([(p.billback_id, p.ppm_id) for p in self._pairs])

    def __len__(self) -> int:
        return len(self._pairs)

    def __repr__(self) -> str:
        return f"ManualMatchSet({[(p.billback_id, p.ppm_id) for p in self._pairs]})"
