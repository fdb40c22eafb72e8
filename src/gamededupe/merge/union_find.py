"""Disjoint-set structure used to collapse accepted match clusters."""

from collections.abc import Hashable, Iterable


class UnionFind:
    """Union-find with path compression and union by rank.

    Elements are registered in first-seen order; ``components`` reports
    members in that order so callers can rely on it for tie-breaks.

    Attributes
    ----------
    parent : dict[Hashable, Hashable]
        Parent pointer per element.
    rank : dict[Hashable, int]
        Upper bound on tree height per root.
    """

    def __init__(self, elements: Iterable[Hashable] = ()) -> None:
        self.parent: dict[Hashable, Hashable] = {}
        self.rank: dict[Hashable, int] = {}
        for element in elements:
            self.make_set(element)

    def __contains__(self, x: Hashable) -> bool:
        return x in self.parent

    def __len__(self) -> int:
        return len(self.parent)

    def make_set(self, x: Hashable) -> None:
        if x not in self.parent:
            self.parent[x] = x
            self.rank[x] = 0

    def find(self, x: Hashable) -> Hashable:
        """Root of the set containing ``x``; unknown elements become singletons."""
        self.make_set(x)

        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, x: Hashable, y: Hashable) -> None:
        root_x = self.find(x)
        root_y = self.find(y)
        if root_x == root_y:
            return

        if self.rank[root_x] < self.rank[root_y]:
            root_x, root_y = root_y, root_x
        self.parent[root_y] = root_x
        if self.rank[root_x] == self.rank[root_y]:
            self.rank[root_x] += 1

    def union_all(self, elements: Iterable[Hashable]) -> None:
        """Merge every element of ``elements`` into one set."""
        first = None
        for element in elements:
            if first is None:
                first = element
                self.make_set(first)
            else:
                self.union(first, element)

    def components(self) -> list[list[Hashable]]:
        """Connected components, members in registration order."""
        groups: dict[Hashable, list[Hashable]] = {}
        for element in self.parent:
            groups.setdefault(self.find(element), []).append(element)
        return list(groups.values())
