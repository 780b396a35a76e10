# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets (Matrix password). Use a local, gitignored .env.

User notification preferences (toggles, quiet hours) are not environment variables:
they live in the JSON file at TASKMON_NOTIFICATION_SETTINGS_PATH and are re-read every cycle.
"""

ENV_VARS = {
    # App / logging
    "TASKMON_APP_NAME": "App display name (default: task-monitor).",
    "TASKMON_LOG_LEVEL": "Console logging level (default: INFO).",
    # Paths (gitignored)
    "TASKMON_DATA_DIR": "Local data directory (default: .local/task_monitor).",
    "TASKMON_TASKS_DB_PATH": "SQLite file for tasks and notification dedup records "
    "(default: <data_dir>/tasks.sqlite3).",
    "TASKMON_NOTIFICATION_SETTINGS_PATH": (
        "Notification preferences JSON (default: <data_dir>/notification_settings.json)."
    ),
    # Monitor tuning
    "TASKMON_CHECK_INTERVAL_MS": "Monitor tick interval in ms (default: 300000).",
    "TASKMON_DUE_SOON_THRESHOLD_MS": "Due-soon lookahead in ms (default: 3600000).",
    "TASKMON_DEDUP_RETENTION_DAYS": "Dedup records older than this are swept (default: 7).",
    "TASKMON_SEND_TIMEOUT_MS": "Upper bound for one notifier send in ms (default: 30000).",
    # Notifier
    "TASKMON_NOTIFIER": "Transport: 'log' (default) or 'matrix'.",
    # Matrix
    "TASKMON_MATRIX_HOMESERVER": "Matrix homeserver URL.",
    "TASKMON_MATRIX_USER_ID": "Matrix user ID (bot).",
    "TASKMON_MATRIX_PASSWORD": "Password for first login (session stored locally).",
    "TASKMON_MATRIX_ROOM_ID": "Room that receives notifications.",
    "TASKMON_MATRIX_STORE_PATH": "Matrix session directory (default: <data_dir>/matrix_store).",
}
