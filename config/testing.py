from .config import *  # noqa: F401,F403

SECRET_KEY = "test-secret"

DEBUG = False
TESTING = True

LINE_CHANNEL_ACCESS_TOKEN = "test-access-token"
LINE_CHANNEL_SECRET = "test-channel-secret"
TASK_TOKEN = "test-task-token"
CONVERSATION_BACKEND = "memory"

AUTO_INIT_DB = False
