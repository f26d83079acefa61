"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_LATE_CHECKIN_EXTRA_MINUTES = 60
DEFAULT_HISTORY_DAYS = 30
DEFAULT_ACTIVITY_LIMIT = 50
DEFAULT_ADMIN_ACTIVITY_LIMIT = 100
DEFAULT_PAGE_SIZE = 20

# Break policy column defaults (used when a seed row leaves them out).
DEFAULT_MAX_BREAKS_PER_DAY = 2
DEFAULT_MIN_BREAK_MINUTES = 10
DEFAULT_MAX_BREAK_MINUTES = 30
DEFAULT_AUTO_APPROVE_LIMIT = 15
DEFAULT_COOLDOWN_MINUTES = 90
DEFAULT_MEETING_BUFFER_MINUTES = 10
