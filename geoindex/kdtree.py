"""
2-D KD-tree over latitude/longitude
Batch-built balanced index with incremental insert and great-circle radius queries.

Axis alternates with depth: depth 0 splits on latitude, depth 1 on longitude.
Points carry an opaque payload so the index never depends on the stop model.
"""

import math
from dataclasses import dataclass
from typing import Generic, Iterator, List, Optional, Sequence, Tuple, TypeVar

from geoindex.utils import LAT_AXIS, LON_AXIS, haversine_distance, lat_lon_bounding_box
from geoindex.worker_pool import map_ordered
from logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class GeoPoint(Generic[T]):
    """A latitude/longitude pair with a payload reference."""
    lat: float
    lon: float
    data: Optional[T] = None

    def coord(self, axis: int) -> float:
        return self.lat if axis == LAT_AXIS else self.lon


@dataclass
class Node(Generic[T]):
    point: GeoPoint[T]
    axis: int
    left: Optional["Node[T]"] = None
    right: Optional["Node[T]"] = None


def _axis_for_depth(depth: int) -> int:
    return LAT_AXIS if depth % 2 == 0 else LON_AXIS


def _split(points: Sequence[GeoPoint[T]], depth: int) -> Tuple[Node[T], List[GeoPoint[T]], List[GeoPoint[T]]]:
    """Stable-sort on the depth's axis and split around the median."""
    axis = _axis_for_depth(depth)
    ordered = sorted(points, key=lambda p: p.coord(axis))
    median = len(ordered) // 2
    return Node(point=ordered[median], axis=axis), ordered[:median], ordered[median + 1:]


def build_kdtree(points: Sequence[GeoPoint[T]], depth: int = 0) -> Optional[Node[T]]:
    """
    Build a balanced subtree from points.

    Args:
        points: Points to index (not modified)
        depth: Depth of the subtree root, which selects its split axis

    Returns:
        Subtree root, or None for no points
    """
    if not points:
        return None

    node, left, right = _split(points, depth)
    node.left = build_kdtree(left, depth + 1)
    node.right = build_kdtree(right, depth + 1)
    return node


def _build_task(task: Tuple[List[GeoPoint[T]], int]) -> Optional[Node[T]]:
    points, depth = task
    return build_kdtree(points, depth)


def build_kdtree_parallel(points: Sequence[GeoPoint[T]], max_workers: int) -> Optional[Node[T]]:
    """
    Build the same tree as build_kdtree, handing lower subtrees to worker threads.

    The top levels are partitioned on the calling thread until there are at
    least max_workers independent slices; each slice becomes one subtree task.
    """
    if max_workers <= 1 or len(points) < 2 * max_workers:
        return build_kdtree(points)

    split_depth = max(1, math.ceil(math.log2(max_workers)))
    slots: List[Tuple[Node[T], str]] = []
    tasks: List[Tuple[List[GeoPoint[T]], int]] = []

    def partition(subset: Sequence[GeoPoint[T]], depth: int) -> Optional[Node[T]]:
        if not subset:
            return None
        node, left, right = _split(subset, depth)
        if depth + 1 >= split_depth:
            for side, child_points in (("left", left), ("right", right)):
                if child_points:
                    slots.append((node, side))
                    tasks.append((child_points, depth + 1))
        else:
            node.left = partition(left, depth + 1)
            node.right = partition(right, depth + 1)
        return node

    root = partition(points, 0)
    for (node, side), subtree in zip(slots, map_ordered(_build_task, tasks, max_workers)):
        setattr(node, side, subtree)

    logger.debug(f"Built KD-tree with {len(tasks)} parallel subtree tasks")
    return root


def insert(root: Optional[Node[T]], point: GeoPoint[T]) -> Node[T]:
    """
    Insert a point by binary-search descent on each node's split axis.

    Descent is iterative, so long unbalanced chains cannot exhaust the
    interpreter's recursion limit. No rebalancing is done.

    Returns:
        The (possibly new) root
    """
    if root is None:
        return Node(point=point, axis=LAT_AXIS)

    node = root
    while True:
        child_axis = LON_AXIS if node.axis == LAT_AXIS else LAT_AXIS
        if point.coord(node.axis) < node.point.coord(node.axis):
            if node.left is None:
                node.left = Node(point=point, axis=child_axis)
                return root
            node = node.left
        else:
            if node.right is None:
                node.right = Node(point=point, axis=child_axis)
                return root
            node = node.right


def search_range(root: Optional[Node[T]], query: GeoPoint, radius_km: float) -> List[GeoPoint[T]]:
    """
    Find all points within radius_km (great-circle) of query.

    Subtrees are pruned with a degree bounding box around the query that is
    never narrower than the true search circle; every visited node is then
    checked exactly with the haversine distance.

    Args:
        root: Tree root (None for an empty tree)
        query: Search center; its payload is ignored
        radius_km: Search radius in kilometers

    Returns:
        Matching points, in tree visiting order
    """
    results: List[GeoPoint[T]] = []
    if root is None or radius_km < 0:
        return results

    min_lat, max_lat, min_lon, max_lon = lat_lon_bounding_box(query.lat, query.lon, radius_km)
    bounds = {LAT_AXIS: (min_lat, max_lat), LON_AXIS: (min_lon, max_lon)}

    stack = [root]
    while stack:
        node = stack.pop()
        point = node.point
        if haversine_distance(query.lat, query.lon, point.lat, point.lon) <= radius_km:
            results.append(point)

        low, high = bounds[node.axis]
        node_coord = point.coord(node.axis)
        # Right is pushed first so the left subtree is visited first
        if node.right is not None and high >= node_coord:
            stack.append(node.right)
        if node.left is not None and low <= node_coord:
            stack.append(node.left)

    return results


class KDTree(Generic[T]):
    """
    Spatial index over GeoPoints.

    Build once from a batch with KDTree.build(); insert() is meant for
    modest incremental additions since it never rebalances.
    """

    def __init__(self, root: Optional[Node[T]] = None, size: int = 0):
        self.root = root
        self.size = size

    @classmethod
    def build(cls, points: Sequence[GeoPoint[T]], max_workers: int = 1) -> "KDTree[T]":
        points = list(points)
        if max_workers > 1:
            root = build_kdtree_parallel(points, max_workers)
        else:
            root = build_kdtree(points)
        return cls(root, len(points))

    def insert(self, point: GeoPoint[T]) -> None:
        self.root = insert(self.root, point)
        self.size += 1

    def range_search(self, query: GeoPoint, radius_km: float) -> List[GeoPoint[T]]:
        return search_range(self.root, query, radius_km)

    def depth(self) -> int:
        """Number of levels in the tree (0 when empty)."""
        if self.root is None:
            return 0
        deepest = 0
        stack = [(self.root, 1)]
        while stack:
            node, level = stack.pop()
            deepest = max(deepest, level)
            for child in (node.left, node.right):
                if child is not None:
                    stack.append((child, level + 1))
        return deepest

    def __len__(self) -> int:
        return self.size

    def __iter__(self) -> Iterator[GeoPoint[T]]:
        stack = [self.root] if self.root is not None else []
        while stack:
            node = stack.pop()
            yield node.point
            if node.right is not None:
                stack.append(node.right)
            if node.left is not None:
                stack.append(node.left)
