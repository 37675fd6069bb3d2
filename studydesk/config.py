"""Environment configuration for StudyDesk.

Values are read once at import. A local .env file is honoured so
development setups don't need exported variables.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Database configuration priority:
# 1. DATABASE_URL (PostgreSQL, MySQL or SQLite URL)
# 2. Local SQLite file next to the package (for development)
_DEFAULT_DB_PATH = Path(__file__).parent.parent / "studydesk.db"
DATABASE_URL = os.environ.get("DATABASE_URL") or f"sqlite:///{_DEFAULT_DB_PATH}"

# Hosted Postgres providers still hand out postgres:// URLs
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# Generation
OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY")
OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")
GENERATION_TEMPERATURE = float(os.environ.get("GENERATION_TEMPERATURE", "0.7"))
STRUCTURED_TEMPERATURE = float(os.environ.get("STRUCTURED_TEMPERATURE", "0.3"))

# HTTP
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]
PORT = int(os.environ.get("PORT", 8000))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
