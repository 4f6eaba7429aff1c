"""
Configuration — loads settings from environment / .env file.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Paths
PROJECT_ROOT = Path(__file__).parent

# Storage
DATABASE_URL = os.getenv("DATABASE_URL", "postgresql://localhost:5432/feature_catalog")
FEATURE_STORE = os.getenv("FEATURE_STORE", "memory").lower()  # memory, postgres

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Paging for catalog listings
DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "50"))
MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", "500"))
