"""
Domain models for the launcher.

All models are re-exported here for convenient access:

    from launchkit.core.models import EnvironmentRecord, RequiredEnvironment, ProcessResult
"""

from launchkit.core.models.environment import (
    EnvironmentRecord,
    RequiredEnvironment,
    RunMode,
)
from launchkit.core.models.process import Candidate, ProcessResult

__all__ = [
    # process.py
    "Candidate",
    # environment.py
    "EnvironmentRecord",
    "ProcessResult",
    "RequiredEnvironment",
    "RunMode",
]
