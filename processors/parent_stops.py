"""
Parent station inference
Clusters stops that are the same place (nearby, similarly named, or already
grouped under a station) and links every stop to one station record per cluster.
"""

import math
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from geoindex.config import ClusteringConfig
from geoindex.error_handling import HierarchyError
from geoindex.kdtree import GeoPoint, KDTree
from geoindex.names import NameNormalizer, names_match
from geoindex.union_find import UnionFind
from geoindex.worker_pool import chunked, map_ordered
from logging_config import get_logger, log_error, log_performance
from processors.models import StopMap, make_parent_station, synthetic_parent_id

logger = get_logger(__name__)


@dataclass
class ClusteringResult:
    """Set counts and changes from one run."""
    sets_before: int        # one set per stop, before any union
    sets_seeded: int        # after existing parent links were merged
    sets_after: int         # after name/proximity merges
    parents_created: int
    stops_backfilled: int
    duration_s: float = 0.0

    @property
    def merged(self) -> int:
        """Sets removed by name/proximity merges."""
        return self.sets_seeded - self.sets_after

    @property
    def merge_percentage(self) -> float:
        if self.sets_seeded == 0:
            return 0.0
        return 100.0 * self.merged / self.sets_seeded


class ExtendParentStops:
    """
    Infers parent stations for a stop dataset, in place.

    A run seeds a union-find forest from existing parent links, joins
    every pair of stops within radius_km whose names match, then gives
    each cluster a synthetic "par::" station. Stops left without a parent
    get a station of their own.

    Name comparisons run on worker threads; the forest and the dataset
    are only touched from the calling thread.
    """

    def __init__(self, config: Optional[ClusteringConfig] = None):
        self.config = config or ClusteringConfig()
        self.normalizer = NameNormalizer(self.config.name_rules)

    def run(self, stops: StopMap) -> ClusteringResult:
        """
        Cluster stops and write parent links back onto them.

        Args:
            stops: stop_id -> Stop; synthetic parents are added to it

        Returns:
            ClusteringResult with before/after set counts

        Raises:
            HierarchyError: a stop's parent station is not in stops
        """
        start = time.time()
        logger.info(f"Extending parent stops for {len(stops)} stops")

        forest: UnionFind[str] = UnionFind()
        sets_before = self._seed(stops, forest)
        sets_seeded = forest.num_disjoint_sets()

        tree = self._build_index(stops)
        for left_id, right_id in self._propose(stops, tree):
            forest.union(left_id, right_id)
        sets_after = forest.num_disjoint_sets()

        created = self._canonicalize(stops, forest)
        backfilled, backfill_created = self._backfill(stops)

        result = ClusteringResult(
            sets_before=sets_before,
            sets_seeded=sets_seeded,
            sets_after=sets_after,
            parents_created=created + backfill_created,
            stops_backfilled=backfilled,
            duration_s=time.time() - start,
        )
        logger.info(
            f"Extending parent stops done (+{result.merged} parent stops "
            f"[+{result.merge_percentage:.2f}%])",
            extra={"sets_before": sets_before, "sets_after": sets_after},
        )
        log_performance(logger, "extend_parent_stops", result.duration_s,
                        sets_before=sets_before, sets_after=sets_after)
        return result

    def _seed(self, stops: StopMap, forest: UnionFind[str]) -> int:
        """Register every stop and merge existing stop -> parent links."""
        for stop_id in stops:
            forest.init_key(stop_id)
        registered = forest.num_disjoint_sets()

        for stop_id, stop in stops.items():
            parent = stop.parent_station
            if parent is None or parent.stop_id == stop_id:
                continue
            if parent.stop_id not in stops:
                log_error(logger, "hierarchy", f"Unknown parent station {parent.stop_id}",
                          stop_id=stop_id)
                raise HierarchyError(stop_id, parent.stop_id)
            # Existing hierarchy is authoritative: its station stays the root
            forest.mark_preferred(parent.stop_id)
            forest.union(stop_id, parent.stop_id)

        logger.info(f"Seeded {registered} stops into {forest.num_disjoint_sets()} sets")
        return registered

    def _build_index(self, stops: StopMap) -> KDTree[str]:
        points = []
        skipped = 0
        for stop_id, stop in stops.items():
            if math.isfinite(stop.lat) and math.isfinite(stop.lon):
                points.append(GeoPoint(stop.lat, stop.lon, stop_id))
            else:
                skipped += 1
        if skipped:
            logger.warning(f"{skipped} stops without usable coordinates left out of the spatial index")

        index_start = time.time()
        tree = KDTree.build(points, max_workers=self.config.workers)
        log_performance(logger, "build_index", time.time() - index_start)
        logger.debug(f"Spatial index holds {len(tree)} points, depth {tree.depth()}")
        return tree

    def _propose(self, stops: StopMap, tree: KDTree[str]):
        """Yield (stop_id, neighbor_id) pairs that should share a parent, in stop order.

        Searches and name scoring run on worker threads; under the GIL this
        bounds concurrency rather than buying much CPU speedup.
        """
        normalized = {stop_id: self.normalizer.normalize(stop.name) for stop_id, stop in stops.items()}
        radius_km = self.config.radius_km
        threshold = self.config.similarity_threshold

        def match_chunk(stop_ids: Sequence[str]) -> List[Tuple[str, str]]:
            pairs = []
            for stop_id in stop_ids:
                stop = stops[stop_id]
                if not (math.isfinite(stop.lat) and math.isfinite(stop.lon)):
                    continue
                for point in tree.range_search(GeoPoint(stop.lat, stop.lon), radius_km):
                    other_id = point.data
                    if other_id == stop_id:
                        continue
                    other = stops[other_id]
                    if names_match(stop.name, other.name, normalized[stop_id], normalized[other_id], threshold):
                        pairs.append((stop_id, other_id))
            return pairs

        chunks = chunked(list(stops), self.config.chunk_size)
        for pairs in map_ordered(match_chunk, chunks, self.config.workers):
            for stop_id, other_id in pairs:
                logger.debug(f"Matched {stop_id} ({stops[stop_id].name}) with {other_id} ({stops[other_id].name})")
                yield stop_id, other_id

    def _canonicalize(self, stops: StopMap, forest: UnionFind[str]) -> int:
        """Point every member of a multi-stop cluster at the cluster's synthetic station."""
        created = 0
        for root_id, members in forest.clusters().items():
            if len(members) < 2:
                continue

            root = stops[root_id]
            if root.is_synthetic_parent:
                parent = root
            else:
                parent = stops.get(synthetic_parent_id(root_id))
                if parent is None:
                    parent = make_parent_station(root)
                    stops[parent.stop_id] = parent
                    created += 1

            for member_id in members:
                member = stops[member_id]
                if member is not parent:
                    member.parent_station = parent

        logger.info(f"Created {created} parent stations for merged clusters")
        return created

    def _backfill(self, stops: StopMap) -> Tuple[int, int]:
        """
        Give every stop still without a parent a station of its own.

        Returns:
            (stops linked, stations created)
        """
        backfilled = 0
        created = 0
        for stop_id in list(stops):
            stop = stops[stop_id]
            if stop.is_synthetic_parent:
                continue
            if stop.parent_station is not None and stop.parent_station.stop_id != stop_id:
                continue
            parent = stops.get(synthetic_parent_id(stop_id))
            if parent is None:
                parent = make_parent_station(stop)
                stops[parent.stop_id] = parent
                created += 1
            stop.parent_station = parent
            backfilled += 1

        logger.info(f"Backfilled parent stations for {backfilled} isolated stops")
        return backfilled, created


def extend_parent_stops(stops: StopMap, config: Optional[ClusteringConfig] = None) -> ClusteringResult:
    """Run parent station inference over stops with the given (or default) config."""
    return ExtendParentStops(config).run(stops)
