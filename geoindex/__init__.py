"""
Geoindex Package
Pure building blocks for stop deduplication: spatial index, name matching, union-find
"""

from . import kdtree
from . import names
from . import union_find
from . import utils

__all__ = ['kdtree', 'names', 'union_find', 'utils']
