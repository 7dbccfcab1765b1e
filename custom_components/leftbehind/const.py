DOMAIN = "leftbehind"
VERSION = "0.3.0"

# Config entry keys
CONF_ENTRY_NAME = "entry_name"
CONF_STORE_URL = "store_url"
CONF_API_KEY = "api_key"
CONF_USER_ID = "user_id"
CONF_PERSON_ENTITY = "person_entity"
CONF_HOME_LATITUDE = "home_latitude"
CONF_HOME_LONGITUDE = "home_longitude"
CONF_NOTIFY_TARGET = "notify_target"

# Presence evaluation
HOME_RADIUS = 80.0                 # metres; at or inside this distance the user is home
DRIVING_SPEED_THRESHOLD = 13.4     # m/s (~30 mph); fast walking and cycling stay below it
EARTH_RADIUS = 6371000.0           # metres, used by the haversine formula

# Location sampling (seconds)
ONE_SHOT_TIMEOUT = 10              # bounded wait for a single fresh fix
ONE_SHOT_MAX_AGE = 0               # no cached result for one-shot requests
WATCH_MAX_AGE = 5                  # cache window tolerated by the continuous watch

# Entity domains that carry a usable position
POSITION_DOMAINS = ("person", "device_tracker")

# Remote store
TRACKERS_INTERVAL = 60             # seconds between tracker snapshot refreshes
HISTORY_PAGE_SIZE = 50
TRACKERS_TABLE = "trackers"
ALARM_HISTORY_TABLE = "alarm_history"

# Alarm records
ALARM_TYPE_FORGOTTEN = "forgotten_items"
NOTIFICATION_TAG = "leftbehind_alarm"
ADVISORY_NOTIFICATION_ID = "leftbehind_location_advisory"

# Severity → notification priority
PRIORITY_BY_SEVERITY: dict[str, str] = {
    "info":    "low",
    "warning": "normal",
    "danger":  "high",
}

# Presence status sensor states
STATUS_NO_DATA = "no_data"
STATUS_OPTIONS = ["danger", "safe", "at_home", "driving", STATUS_NO_DATA]

# Services
SERVICE_REFRESH_LOCATION = "refresh_location"
SERVICE_DISMISS_ALARM = "dismiss_alarm"
ATTR_ALARM_ID = "alarm_id"
SERVICE_GET_ALARM_HISTORY = "get_alarm_history"
ATTR_SEVERITY = "severity"
