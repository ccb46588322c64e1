"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_HORIZON_DAYS = 56
DEFAULT_LIST_LIMIT = 200
DEFAULT_RETRY_BACKOFF_SECONDS = 0.2
DEFAULT_ROLLUP_TTL_SECONDS = 30

# Persisted weekday codes -> datetime.weekday()
WEEKDAY_CODES = {
    "MON": 0,
    "TUE": 1,
    "WED": 2,
    "THU": 3,
    "FRI": 4,
    "SAT": 5,
    "SUN": 6,
}
# "No fixed day": the contract has no concrete slot pattern to materialize.
ANY_WEEKDAY_CODE = "ANY"
