"""
Application-wide constants.
Centralizes magic numbers and fixed keys.
"""

# business_settings keys read by the configuration reader
SETTING_BUSINESS_HOURS = "business_hours"
SETTING_BOOKING_WINDOW_DAYS = "booking_window_days"
SETTING_BUFFER_TIME_MINUTES = "buffer_time_minutes"
SETTING_MIN_ADVANCE_HOURS = "min_advance_booking_hours"
SETTING_MAX_APPOINTMENTS_PER_DAY = "max_appointments_per_day"
SETTING_CANCELLATION_HOURS = "cancellation_hours"
SETTING_RESCHEDULE_DEADLINE_HOURS = "reschedule_deadline_hours"

BOOKING_SETTING_KEYS = (
    SETTING_BUSINESS_HOURS,
    SETTING_BOOKING_WINDOW_DAYS,
    SETTING_BUFFER_TIME_MINUTES,
    SETTING_MIN_ADVANCE_HOURS,
    SETTING_MAX_APPOINTMENTS_PER_DAY,
    SETTING_CANCELLATION_HOURS,
    SETTING_RESCHEDULE_DEADLINE_HOURS,
)

# Monday-first, matching datetime.weekday()
WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

# PostgreSQL unique_violation
UNIQUE_VIOLATION_CODE = "23505"

# Request limits
MAX_SUGGESTIONS_LIMIT = 20
MAX_DURATION_MINUTES = 8 * 60
MAX_NOTES_LENGTH = 1000

CONFIGURATION_UNAVAILABLE_REASON = "Booking configuration is unavailable"

# Only these statuses can be moved to a new time
RESCHEDULABLE_STATUSES = ("pending", "confirmed")

IDEMPOTENCY_KEY_HEADER = "X-Idempotency-Key"
MAX_IDEMPOTENCY_KEY_LENGTH = 255
