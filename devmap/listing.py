from .store import NUMERIC_FIELDS, TEXT_FIELDS

SORT_KEYS = {
    "total_stars": "Stars",
    "followers": "Followers",
    "public_repos": "Repositories",
    "total_forks": "Forks",
}


def render_list(store, sort_key="total_stars", query="", limit=50):
    """Developers matching ``query``, highest ``sort_key`` first, top ``limit``."""
    if sort_key not in NUMERIC_FIELDS:
        raise ValueError(f"Unknown sort key {sort_key!r}")
    devs = store.developers()
    if not devs:
        return []
    df = store.to_frame()

    term = (query or "").strip()
    if term:
        mask = (
            df[list(TEXT_FIELDS)]
              .apply(lambda col: col.astype(str)
                                    .str.contains(term, case=False, na=False,
                                                  regex=False)
                                    & col.notna())
              .any(axis=1)
        )
        df = df[mask]

    df = df.assign(_key=df[sort_key].fillna(0))
    df = df.sort_values("_key", ascending=False, kind="stable").head(limit)
    return [devs[pos] for pos in df["pos"]]
