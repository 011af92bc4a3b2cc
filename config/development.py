from .config import *  # noqa: F401,F403
from .config import env_flag

DEBUG = True
LOG_LEVEL = "DEBUG"

# Apply database/schema.sql on startup (idempotent: CREATE TABLE IF NOT EXISTS)
AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "1")
