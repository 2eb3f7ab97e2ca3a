from datetime import timedelta

# These values are shared with the mobile client. They are deliberately
# not read from the environment.

# --------------------------------------------------
# SIGNALS
# --------------------------------------------------

SIGNAL_TTL = timedelta(seconds=120)

DEFAULT_SIGNAL_RADIUS_METERS = 1000

# Daily signal quota per subscription tier
TIER_SIGNAL_LIMITS = {
    "free": 10,
    "plus": 30,
    "premium": 100,
}
SUBSCRIPTION_TIERS = tuple(TIER_SIGNAL_LIMITS)

# --------------------------------------------------
# MATCHING / CONSENT
# --------------------------------------------------

# How long both sides have to acknowledge a mutual signal
MUTUAL_SIGNAL_TTL = timedelta(minutes=5)

# Expired mutual signals are kept this long before hard deletion
MUTUAL_SIGNAL_GRACE = timedelta(hours=1)

REVEAL_TTL = timedelta(minutes=15)

INTERACTION_TTL = timedelta(minutes=10)

# --------------------------------------------------
# PRESENCE
# --------------------------------------------------

# Sliding window, refreshed on every ping
PRESENCE_TTL = timedelta(minutes=5)

# Stale rows are hard-deleted after this
PRESENCE_RETENTION = timedelta(hours=24)

NEARBY_RESULT_LIMIT = 50

# --------------------------------------------------
# GEO
# --------------------------------------------------

STORAGE_GEOHASH_PRECISION = 6   # ~1.2km cell
SEARCH_GEOHASH_PRECISION = 5    # ~2.4km cell

COORDINATE_DECIMALS = 4         # ~100m

# Half-width of the per-response jitter box, in degrees (~250m)
FUZZ_DEGREES = 0.0025

# --------------------------------------------------
# DAILY RESET
# --------------------------------------------------

DAILY_RESET_UTC_HOUR = 0
