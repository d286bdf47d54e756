"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_CHECK_IN_START = "08:00"
DEFAULT_CHECK_IN_END = "10:00"
DEFAULT_CHECK_IN_TIMEZONE = "UTC+3"

DEFAULT_SESSION_DAYS = 7
HISTORY_DAYS = 30
RECENT_ACTIVITY_LIMIT = 10
PRESENCE_CHART_DAYS = 7

PASSWORD_MIN_LENGTH = 8
DESCRIPTION_MAX_LENGTH = 500
EDIT_REASON_MAX_LENGTH = 200

OAUTH_STATE_MAX_AGE_SECONDS = 5 * 60
RESET_TOKEN_HOURS = 1
INVITATION_HOURS = 24

TRIAL_DAYS = 14
FREE_PLAN_MAX_USERS = 5

WEEKLY_TARGET_HOURS = 40
JIRA_MAX_RESULTS = 1000
JIRA_LOOKBACK_MONTHS = 6
