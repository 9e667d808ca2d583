from .errors import DataNotFound, DataUnavailable, NoDeveloperData
from .session import Session
from .settings import Settings
from .store import Coordinates, Developer, DeveloperStore
from .viewport import Bounds

__all__ = [
    "Bounds",
    "Coordinates",
    "DataNotFound",
    "DataUnavailable",
    "Developer",
    "DeveloperStore",
    "NoDeveloperData",
    "Session",
    "Settings",
]
