# one-off-geocode.py (run this once after downloading developer data)
# Geocodes every distinct developer location and writes geocoded_cache.json,
# which the map uses as its location cache at startup.
import glob, json, os
import pandas as pd
from geopy.geocoders import Nominatim
from geopy.extra.rate_limiter import RateLimiter

DATA_ROOT  = os.environ.get("DEVMAP_DATA", ".")
CACHE_PATH = os.environ.get("DEVMAP_CACHE", "geocoded_cache.json")

records = []
for path in sorted(glob.glob(os.path.join(DATA_ROOT, "data", "developers-batch-*.json"))):
    with open(path, encoding="utf-8") as f:
        records += json.load(f).get("developers", [])
if not records and os.path.exists(os.path.join(DATA_ROOT, "developers-data.json")):
    with open(os.path.join(DATA_ROOT, "developers-data.json"), encoding="utf-8") as f:
        records = json.load(f).get("developers", [])

df = pd.DataFrame(records, columns=["login", "location"])
df = df[df.location.notna() & (df.location.str.strip()!="")].copy()

# Keep anything already resolved
if os.path.exists(CACHE_PATH):
    with open(CACHE_PATH, encoding="utf-8") as f:
        cache = json.load(f)
else:
    cache = {}

geolocator = Nominatim(user_agent="github_developers_map")
geocode    = RateLimiter(geolocator.geocode, min_delay_seconds=1, max_retries=3)

todo = [loc for loc in df["location"].unique() if loc not in cache]
print(f"{len(todo)} new locations to geocode ({len(cache)} cached)")
for loc in todo:
    res = geocode(loc, timeout=10)
    cache[loc] = (res.latitude, res.longitude) if res else (None, None)

with open(CACHE_PATH, "w", encoding="utf-8") as f:
    json.dump(cache, f, indent=2, ensure_ascii=False)
print(f"Cache written to {CACHE_PATH}!")
