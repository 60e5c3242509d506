"""Disjoint-set forest with path compression and union by rank."""

from typing import Dict, List, Optional, Tuple


class UnionFind:
    """Disjoint sets over the integers ``0..len-1``; grows with ``add``."""

    def __init__(self, size: int = 0):
        self._parent: List[int] = list(range(size))
        self._rank: List[int] = [0] * size

    def __len__(self) -> int:
        return len(self._parent)

    def add(self) -> int:
        """Create a new singleton set and return its element."""
        element = len(self._parent)
        self._parent.append(element)
        self._rank.append(0)
        return element

    def find(self, x: int) -> int:
        root = x
        while self._parent[root] != root:
            root = self._parent[root]
        # Path compression
        while self._parent[x] != root:
            self._parent[x], x = root, self._parent[x]
        return root

    def union(self, a: int, b: int) -> Optional[Tuple[int, int]]:
        """
        Merge the sets of ``a`` and ``b``.

        Returns:
            ``(root, absorbed)`` if two sets were merged, None if they were already one
        """
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return None
        if self._rank[ra] < self._rank[rb]:
            ra, rb = rb, ra
        self._parent[rb] = ra
        if self._rank[ra] == self._rank[rb]:
            self._rank[ra] += 1
        return ra, rb

    def classes(self) -> Dict[int, int]:
        """Number the sets in order of their smallest element.

        Returns:
            Mapping from each root to its class number
        """
        numbering: Dict[int, int] = {}
        for x in range(len(self._parent)):
            root = self.find(x)
            if root not in numbering:
                numbering[root] = len(numbering)
        return numbering
