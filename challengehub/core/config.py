"""
Application configuration.

Values come from the process environment, with a local .env file loaded first.
"""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _get_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


APP_NAME = os.getenv("APP_NAME", "ChallengeHub")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
DEBUG = _get_bool("DEBUG", "True")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Storage: "mongo" for MongoDB, "memory" for a process-local store
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "mongo")
MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "challengehub")
# Multi-document transactions need a replica set; false is for local single-node use only
MONGODB_TRANSACTIONS = _get_bool("MONGODB_TRANSACTIONS", "True")

# Background jobs
SCHEDULER_ENABLED = _get_bool("SCHEDULER_ENABLED", "True")
PENALTY_SWEEP_INTERVAL_MINUTES = int(os.getenv("PENALTY_SWEEP_INTERVAL_MINUTES", "60"))
