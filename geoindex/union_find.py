"""
Disjoint-set forest with preferred roots
Union by rank with path compression, biased so that sets containing an
authoritative parent station keep that station as their root.
"""

from typing import Callable, Dict, Generic, Hashable, Iterator, Set, Tuple, TypeVar

from geoindex.error_handling import DuplicateKeyError, UnknownKeyError
from logging_config import get_logger

logger = get_logger(__name__)

K = TypeVar("K", bound=Hashable)


class UnionFind(Generic[K]):
    """
    Partition of registered keys into disjoint sets.

    Only the forest's creator should mutate it; it does no locking.
    """

    def __init__(self):
        self.parent: Dict[K, K] = {}
        self.rank: Dict[K, int] = {}
        self.size: Dict[K, int] = {}
        self.preferred: Set[K] = set()
        self.num_sets = 0

    def init_key(self, key: K) -> None:
        """Register key as a singleton set."""
        if key in self.parent:
            raise DuplicateKeyError(key)
        self.parent[key] = key
        self.rank[key] = 0
        self.size[key] = 1
        self.num_sets += 1

    def __contains__(self, key: object) -> bool:
        return key in self.parent

    def __len__(self) -> int:
        return len(self.parent)

    def mark_preferred(self, key: K) -> None:
        """Flag the current root of key's set as preferred. The flag is never cleared."""
        self.preferred.add(self.find(key))

    def is_preferred(self, key: K) -> bool:
        return key in self.preferred

    def find(self, key: K) -> K:
        """
        Return the root of key's set, compressing the path behind it.

        Raises:
            UnknownKeyError: key was never registered
        """
        if key not in self.parent:
            raise UnknownKeyError(key, "find")

        root = key
        while self.parent[root] != root:
            root = self.parent[root]

        # Second pass points every node on the path straight at the root
        while self.parent[key] != root:
            self.parent[key], key = root, self.parent[key]

        return root

    def is_same_set(self, a: K, b: K) -> bool:
        return self.find(a) == self.find(b)

    def union(self, a: K, b: K) -> K:
        """
        Merge the sets holding a and b.

        A preferred root wins over a non-preferred one regardless of rank.
        Otherwise the higher-rank root wins; on a tie b's root wins and its
        rank grows by one.

        Returns:
            The root of the merged set
        """
        a_root = self.find(a)
        b_root = self.find(b)
        if a_root == b_root:
            return a_root

        a_preferred = a_root in self.preferred
        b_preferred = b_root in self.preferred

        if a_preferred and not b_preferred:
            winner, loser = a_root, b_root
        elif b_preferred and not a_preferred:
            winner, loser = b_root, a_root
        elif self.rank[a_root] > self.rank[b_root]:
            winner, loser = a_root, b_root
        else:
            winner, loser = b_root, a_root
            if self.rank[a_root] == self.rank[b_root]:
                self.rank[b_root] += 1

        self.parent[loser] = winner
        self.size[winner] += self.size[loser]
        self.num_sets -= 1
        return winner

    def num_disjoint_sets(self) -> int:
        return self.num_sets

    def size_of_set(self, key: K) -> int:
        return self.size[self.find(key)]

    def items(self) -> Iterator[Tuple[K, K]]:
        """Yield (key, root) for every registered key, in registration order."""
        for key in list(self.parent):
            yield key, self.find(key)

    def apply(self, func: Callable[[K, K], None]) -> None:
        """Call func(key, root) for every registered key."""
        for key, root in self.items():
            func(key, root)

    def clusters(self) -> Dict[K, list]:
        """Group registered keys by root."""
        groups: Dict[K, list] = {}
        for key, root in self.items():
            groups.setdefault(root, []).append(key)
        return groups

    def dump(self) -> None:
        """Write every key -> root mapping to the debug log."""
        for key, root in self.items():
            logger.debug(f"{key} -> {root}")
