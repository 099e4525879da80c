"""
Error types for the stop clustering engine
Everything raised here signals a defect in how the engine was seeded or a
dataset whose hierarchy cannot be trusted; none of it is retried.
"""

from typing import Hashable, Optional


class StopMergeError(Exception):
    """Base exception for stopmerge errors."""
    pass


class UnknownKeyError(StopMergeError, KeyError):
    """Raised when the forest is asked about an id that was never registered."""
    def __init__(self, key: Hashable, operation: str):
        super().__init__(f"{operation}: key {key!r} was never registered")
        self.key = key
        self.operation = operation

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class DuplicateKeyError(StopMergeError):
    """Raised when the same id is registered twice in one forest."""
    def __init__(self, key: Hashable):
        super().__init__(f"key {key!r} is already registered")
        self.key = key


class HierarchyError(StopMergeError):
    """Raised when a stop references a parent station missing from the dataset."""
    def __init__(self, stop_id: str, parent_id: Optional[str]):
        super().__init__(
            f"stop {stop_id!r} references parent station {parent_id!r} "
            f"which is not in the dataset"
        )
        self.stop_id = stop_id
        self.parent_id = parent_id
