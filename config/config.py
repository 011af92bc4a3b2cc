"""Settings shared by every environment; each env module starts from these."""

import os


def env_flag(name: str, default: str = "0") -> bool:
    return bool(int(os.getenv(name, default)))


SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "checkin_db"),
}

# LINE Messaging API channel
LINE_CHANNEL_ACCESS_TOKEN = os.getenv("LINE_CHANNEL_ACCESS_TOKEN", "")
LINE_CHANNEL_SECRET = os.getenv("LINE_CHANNEL_SECRET", "")

# Civil timezone for every session/late/absence computation
TIMEZONE = os.getenv("TIMEZONE", "Asia/Taipei")

REMIND_BEFORE_CLASS = env_flag("REMIND_BEFORE_CLASS", "1")
REMIND_MINUTES = int(os.getenv("REMIND_MINUTES", "10"))
NOTIFY_ABSENT = env_flag("NOTIFY_ABSENT", "1")
ABSENCE_WARNING_THRESHOLD = int(os.getenv("ABSENCE_WARNING_THRESHOLD", "3"))

# Shared secret for /tasks/* and /api/* (sent as X-Task-Token)
TASK_TOKEN = os.getenv("TASK_TOKEN", "")

# "memory" keeps flows in-process; "mysql" shares them across instances
CONVERSATION_BACKEND = os.getenv("CONVERSATION_BACKEND", "memory")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "0")
