"""Domain layer definitions."""

from .jobs import JobRecord, JobState
from .stores import PotentialCategoryObservation, StoreConfiguration

__all__ = [
    "JobRecord",
    "JobState",
    "PotentialCategoryObservation",
    "StoreConfiguration",
]
