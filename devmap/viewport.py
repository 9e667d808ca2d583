from dataclasses import dataclass

import pandas as pd

from .settings import Settings


@dataclass(frozen=True)
class Bounds:
    south: float
    west: float
    north: float
    east: float

    @classmethod
    def from_leaflet(cls, bounds):
        """``[[south, west], [north, east]]`` as reported by the map widget."""
        (south, west), (north, east) = bounds
        return cls(float(south), float(west), float(north), float(east))

    def pad(self, ratio):
        dlat = abs(self.north - self.south) * ratio
        dlng = abs(self.east - self.west) * ratio
        return Bounds(self.south - dlat, self.west - dlng,
                      self.north + dlat, self.east + dlng)


WORLD = Bounds(-90.0, -180.0, 90.0, 180.0)


def select(bounds, store, settings=None):
    """Developers worth drawing for ``bounds``, most-followed first.

    Developers without coordinates but with a location string ride along so
    the marker renderer can resolve them.
    """
    settings = settings or Settings()
    total = len(store)
    if not total:
        return []
    devs = store.developers()
    df = store.to_frame()

    has_coords = df["Latitude"].notna() & df["Longitude"].notna()
    pending = ~has_coords & df["location"].fillna("").astype(str).str.strip().ne("")

    show_all = total < settings.show_all_below
    if show_all:
        m = has_coords | pending
        cap = min(total, settings.show_all_cap)
    else:
        box = bounds.pad(settings.view_padding)
        lat = pd.to_numeric(df["Latitude"])
        lng = pd.to_numeric(df["Longitude"])
        inside = has_coords & lat.between(box.south, box.north) & lng.between(box.west, box.east)
        m = inside | pending
        cap = settings.developers_per_view

    picked = (df[m]
              .sort_values("followers", ascending=False, kind="stable")
              .head(cap))
    return [devs[pos] for pos in picked["pos"]]
