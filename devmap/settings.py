import os
from dataclasses import dataclass, fields

ENV_PREFIX = "DEVMAP_"


@dataclass(frozen=True)
class Settings:
    # progressive loading
    initial_batches: int = 2
    batches_per_zoom: int = 1
    max_batches: int = 10
    min_zoom_for_more: int = 5
    initial_batch_delay: float = 0.1
    batch_delay: float = 0.2

    # viewport selection
    developers_per_view: int = 100
    view_padding: float = 0.2
    show_all_below: int = 100
    show_all_cap: int = 200

    # marker rendering
    geocode_group_size: int = 5
    geocode_delay: float = 0.1
    marker_offset: float = 0.001

    # list view
    list_limit: int = 50

    @classmethod
    def from_env(cls, environ=None):
        """Build settings, overriding defaults with DEVMAP_* variables.

        ``DEVMAP_MAX_BATCHES=4`` sets ``max_batches``; values are parsed with
        the type of the field default.
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw.strip() == "":
                continue
            kind = type(f.default)
            try:
                overrides[f.name] = kind(raw)
            except ValueError:
                raise ValueError(
                    f"Expected {kind.__name__} for '{ENV_PREFIX}{f.name.upper()}', got {raw!r}"
                ) from None
        return cls(**overrides)
