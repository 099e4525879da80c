import random

import pytest

from geoindex.kdtree import GeoPoint, KDTree, build_kdtree, build_kdtree_parallel, insert, search_range
from geoindex.utils import LAT_AXIS, LON_AXIS, haversine_distance


CITIES = [
    GeoPoint(52.52, 13.405, "Berlin"),
    GeoPoint(48.8566, 2.3522, "Paris"),
    GeoPoint(51.5074, -0.1278, "London"),
    GeoPoint(40.7128, -74.0060, "New York"),
    GeoPoint(52.3667, 4.8945, "Amsterdam"),
    GeoPoint(35.6895, 139.6917, "Tokyo"),
]


def _names(points):
    return {p.data for p in points}


def _brute_force(points, query, radius_km):
    return {p.data for p in points if haversine_distance(query.lat, query.lon, p.lat, p.lon) <= radius_km}


def _preorder(node):
    out = []
    stack = [node] if node is not None else []
    while stack:
        n = stack.pop()
        out.append((n.point.lat, n.point.lon, n.point.data, n.axis))
        stack.append(n.right)
        stack.append(n.left)
        stack = [s for s in stack if s is not None]
    return out


def _insert_all(points):
    tree = KDTree()
    for p in points:
        tree.insert(p)
    return tree


@pytest.mark.parametrize("make_tree", [KDTree.build, _insert_all])
def test_city_queries(make_tree):
    tree = make_tree(CITIES)
    paris = CITIES[1]
    tokyo = CITIES[5]

    assert _names(tree.range_search(paris, 500)) == {"Paris", "Amsterdam", "London"}
    assert _names(tree.range_search(paris, 20000)) == {c.data for c in CITIES}
    assert _names(tree.range_search(tokyo, 1)) == {"Tokyo"}
    assert tree.range_search(GeoPoint(0.0, 0.0), 100) == []


def test_empty_index():
    assert build_kdtree([]) is None
    tree = KDTree.build([])
    assert len(tree) == 0
    assert tree.depth() == 0
    assert tree.range_search(GeoPoint(10.0, 10.0), 20000) == []
    assert list(tree) == []


def test_single_point():
    tree = KDTree.build([GeoPoint(1.0, 2.0, "only")])
    assert _names(tree.range_search(GeoPoint(1.0, 2.0), 0)) == {"only"}
    assert tree.range_search(GeoPoint(1.0, 3.0), 1) == []


def test_axis_alternates_with_depth():
    root = build_kdtree(CITIES)
    assert root.axis == LAT_AXIS
    for child in (root.left, root.right):
        assert child.axis == LON_AXIS


def test_median_rule():
    points = [GeoPoint(float(lat), 0.0, lat) for lat in [5, 1, 4, 2, 3]]
    root = build_kdtree(points)
    assert root.point.data == 3
    assert root.left.point.lat < 3 and root.right.point.lat > 3


def test_build_does_not_modify_input():
    points = list(CITIES)
    build_kdtree(points)
    assert points == CITIES


def test_build_depth_is_logarithmic():
    rng = random.Random(7)
    points = [GeoPoint(rng.uniform(-60, 60), rng.uniform(-170, 170), i) for i in range(4096)]
    tree = KDTree.build(points)
    assert len(tree) == 4096
    assert tree.depth() == 13


def test_coincident_points_all_returned():
    points = [GeoPoint(50.0, 8.0, i) for i in range(25)]
    tree = KDTree.build(points)
    assert _names(tree.range_search(GeoPoint(50.0, 8.0), 0.001)) == set(range(25))

    inserted = _insert_all(points)
    assert _names(inserted.range_search(GeoPoint(50.0, 8.0), 0.001)) == set(range(25))


def test_insert_into_built_tree():
    tree = KDTree.build(CITIES[:3])
    hamburg = GeoPoint(53.5511, 9.9937, "Hamburg")
    tree.insert(hamburg)

    assert len(tree) == 4
    assert "Hamburg" in _names(tree.range_search(hamburg, 50))


def test_insert_functional_api_returns_root():
    root = insert(None, CITIES[0])
    assert root.point is CITIES[0]
    same_root = insert(root, CITIES[1])
    assert same_root is root


def test_sorted_inserts_do_not_hit_recursion_limit():
    # Increasing on both axes makes every insert go right: a linear chain
    points = [GeoPoint(-80 + i * 0.03, -170 + i * 0.06, i) for i in range(5000)]
    tree = _insert_all(points)

    assert tree.depth() == 5000
    assert len(list(tree)) == 5000
    query = points[2500]
    assert query.data in _names(tree.range_search(query, 1))


@pytest.mark.parametrize("workers", [2, 3, 4, 8])
def test_parallel_build_matches_sequential(workers):
    rng = random.Random(workers)
    points = [GeoPoint(rng.uniform(-80, 80), rng.uniform(-180, 180), i) for i in range(1000)]

    sequential = build_kdtree(points)
    parallel = build_kdtree_parallel(points, workers)

    assert _preorder(parallel) == _preorder(sequential)


def test_parallel_build_small_input_falls_back():
    assert _preorder(build_kdtree_parallel(CITIES, 8)) == _preorder(build_kdtree(CITIES))


@pytest.mark.parametrize("seed", range(5))
def test_range_search_never_misses_a_point(seed):
    rng = random.Random(seed)
    points = []
    for i in range(600):
        region = rng.random()
        if region < 0.2:
            lat = rng.uniform(80, 90) * rng.choice([-1, 1])      # polar
            lon = rng.uniform(-180, 180)
        elif region < 0.4:
            lat = rng.uniform(-60, 60)
            lon = rng.choice([rng.uniform(170, 180), rng.uniform(-180, -170)])  # antimeridian
        else:
            lat = rng.uniform(-90, 90)
            lon = rng.uniform(-180, 180)
        points.append(GeoPoint(lat, lon, i))

    built = KDTree.build(points)
    inserted = _insert_all(points)

    for _ in range(40):
        query = rng.choice(points)
        if rng.random() < 0.5:
            query = GeoPoint(rng.uniform(-90, 90), rng.uniform(-180, 180))
        radius = rng.choice([0.5, 5, 50, 300, 1500, 5000])
        expected = _brute_force(points, query, radius)

        assert _names(built.range_search(query, radius)) >= expected
        assert _names(inserted.range_search(query, radius)) >= expected


def test_search_range_results_are_within_radius():
    root = build_kdtree(CITIES)
    for p in search_range(root, CITIES[0], 1000):
        assert haversine_distance(CITIES[0].lat, CITIES[0].lon, p.lat, p.lon) <= 1000


def test_negative_radius_returns_nothing():
    tree = KDTree.build(CITIES)
    assert tree.range_search(CITIES[0], -1) == []
