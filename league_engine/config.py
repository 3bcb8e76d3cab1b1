import os
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR}/league.db")

# Scheduler / admin task endpoints
TASKS_API_KEY = os.getenv("TASKS_API_KEY", "")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", str(BASE_DIR / "logs"))
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "false").lower() in ("1", "true", "yes")

# Scoring defaults for leagues created without explicit weights
PUBLIC_LEAGUE_POINTS_FOR_EXACT_SCORE = 5
PUBLIC_LEAGUE_POINTS_FOR_CORRECT_RESULT = 3
