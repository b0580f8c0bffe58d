"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MAKEUP_WINDOW_DAYS = 7
MAX_MAKEUPS_PER_MONTH = 2

DEFAULT_UPCOMING_DAYS = 30
MAX_UPCOMING_DAYS = 90

MAX_REASON_LENGTH = 500
DEFAULT_LIST_LIMIT = 200

# Reported as available_spots for slots without a capacity.
UNLIMITED_SPOTS = 999
