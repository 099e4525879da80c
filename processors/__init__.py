"""
Processors Package
Dataset-mutating passes built on the geoindex building blocks
"""

from .models import LocationType, Stop
from .parent_stops import ClusteringResult, ExtendParentStops, extend_parent_stops

__all__ = ['LocationType', 'Stop', 'ClusteringResult', 'ExtendParentStops', 'extend_parent_stops']
