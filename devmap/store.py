from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import NamedTuple, Optional

import pandas as pd

NUMERIC_FIELDS = ("followers", "public_repos", "total_stars", "total_forks")
TEXT_FIELDS = ("name", "login", "bio", "location", "company")


class Coordinates(NamedTuple):
    lat: float
    lng: float


def _text(value):
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _int(value):
    if value is None or value == "":
        return 0
    return int(value)


@dataclass
class Developer:
    login: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    html_url: Optional[str] = None
    location: Optional[str] = None
    company: Optional[str] = None
    bio: Optional[str] = None
    followers: int = 0
    public_repos: int = 0
    total_stars: int = 0
    total_forks: int = 0
    top_languages: tuple = ()
    social: dict = field(default_factory=dict)
    coordinates: Optional[Coordinates] = None

    @classmethod
    def from_record(cls, rec):
        login = rec.get("login")
        if not isinstance(login, str) or not login.strip():
            raise ValueError(f"Developer record without a login: {rec!r:.80}")

        coords = rec.get("coordinates")
        if (isinstance(coords, Mapping)
                and coords.get("lat") is not None and coords.get("lng") is not None):
            coords = Coordinates(float(coords["lat"]), float(coords["lng"]))
        else:
            coords = None

        return cls(
            login=login,
            name=rec.get("name"),
            avatar_url=rec.get("avatar_url"),
            html_url=rec.get("html_url"),
            location=_text(rec.get("location")),
            company=rec.get("company"),
            bio=rec.get("bio"),
            followers=_int(rec.get("followers")),
            public_repos=_int(rec.get("public_repos")),
            total_stars=_int(rec.get("total_stars")),
            total_forks=_int(rec.get("total_forks")),
            top_languages=tuple(rec.get("top_languages") or ()),
            social=dict(rec.get("social") or {}),
            coordinates=coords,
        )

    @property
    def display_name(self):
        return self.name or self.login


class DeveloperStore:
    """Developers keyed by login, in insertion order. First write wins."""

    def __init__(self):
        self._by_login = {}

    def __len__(self):
        return len(self._by_login)

    def __iter__(self):
        return iter(self._by_login.values())

    def __contains__(self, login):
        return login in self._by_login

    def get(self, login):
        return self._by_login.get(login)

    def add(self, dev):
        if dev.login in self._by_login:
            return False
        self._by_login[dev.login] = dev
        return True

    def developers(self):
        return list(self._by_login.values())

    def clear(self):
        self._by_login.clear()

    def to_frame(self):
        """One row per developer, ``pos`` = insertion position."""
        rows = []
        for pos, dev in enumerate(self._by_login.values()):
            lat, lng = dev.coordinates if dev.coordinates else (None, None)
            row = {"pos": pos, "Latitude": lat, "Longitude": lng}
            for f in TEXT_FIELDS:
                row[f] = getattr(dev, f)
            for f in NUMERIC_FIELDS:
                row[f] = getattr(dev, f)
            rows.append(row)
        columns = ["pos", "Latitude", "Longitude", *TEXT_FIELDS, *NUMERIC_FIELDS]
        return pd.DataFrame(rows, columns=columns)
