"""Design state allocation."""

from .design import DesignState, DesignStateStore, NUM_PASSIVE_FIELDS

__all__ = ["DesignState", "DesignStateStore", "NUM_PASSIVE_FIELDS"]
