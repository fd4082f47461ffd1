"""
Application-wide constants.
"""
import os

# Logging
DEFAULT_LOG_DIRECTORY_PROD = "/var/log/momentum"
DEFAULT_LOG_DIRECTORY_DEV = "./logs"

# CORS
CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "MOMENTUM_CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173"
    ).split(",")
    if origin.strip()
]

# Activity classes
ACTIVITY_CLASS_STRENGTH = "Strength"
ACTIVITY_CLASS_SPEED = "Speed"
ACTIVITY_CLASS_BALANCE = "Balance"
ACTIVITY_CLASS_SKILL = "Skill"
ACTIVITY_CLASS_EXTREME = "Extreme"
ACTIVITY_CLASSES = (
    ACTIVITY_CLASS_STRENGTH,
    ACTIVITY_CLASS_SPEED,
    ACTIVITY_CLASS_BALANCE,
    ACTIVITY_CLASS_SKILL,
    ACTIVITY_CLASS_EXTREME,
)

# Goals
GOAL_PERIOD_WEEKLY = "weekly"
DAYS_PER_PERIOD = 7

# Follows
FOLLOW_STATUS_PENDING = "pending"
FOLLOW_STATUS_ACCEPTED = "accepted"
FOLLOW_ACTION_ACCEPT = "accept"
FOLLOW_ACTION_DENY = "deny"

# Activity log
LOCATION_HIDDEN_SENTINEL = "Location Hidden"
PROFILE_ACTIVITY_PAGE_SIZE = 5
FOLLOW_LIST_PAGE_SIZE = 20
SEARCH_RESULTS_LIMIT = 20

# Default catalog, seeded on startup when the reference table is empty.
# (activity_class, activity_label, allowed_units)
DEFAULT_ACTIVITY_CATALOG = [
    (ACTIVITY_CLASS_STRENGTH, "Weightlifting", ["kg", "lb", "reps"]),
    (ACTIVITY_CLASS_STRENGTH, "Push-ups", ["reps"]),
    (ACTIVITY_CLASS_STRENGTH, "Pull-ups", ["reps"]),
    (ACTIVITY_CLASS_SPEED, "Running", ["km", "mi", "min"]),
    (ACTIVITY_CLASS_SPEED, "Cycling", ["km", "mi", "min"]),
    (ACTIVITY_CLASS_SPEED, "Swimming", ["m", "laps", "min"]),
    (ACTIVITY_CLASS_BALANCE, "Yoga", ["min"]),
    (ACTIVITY_CLASS_BALANCE, "Pilates", ["min"]),
    (ACTIVITY_CLASS_SKILL, "Climbing", ["routes", "min"]),
    (ACTIVITY_CLASS_SKILL, "Martial Arts", ["min", "rounds"]),
    (ACTIVITY_CLASS_EXTREME, "Skydiving", ["jumps"]),
    (ACTIVITY_CLASS_EXTREME, "Ultramarathon", []),
]
