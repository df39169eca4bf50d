# crm_reports/core/config.py
"""Environment-driven settings for the reporting service."""

import os
from dotenv import load_dotenv

load_dotenv()

# ===== DATABASE =====
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./crm_reports.db")
SEED_SAMPLE_DATA = os.getenv("SEED_SAMPLE_DATA", "false").lower() == "true"

# ===== REQUEST CONTEXT =====
# Used when a request carries no tenant headers
APPLICATION_ID = os.getenv("APPLICATION_ID", "Unknown")
DEFAULT_ORG_ID = os.getenv("DEFAULT_ORG_ID", "default-org")
DEFAULT_USER_ID = os.getenv("DEFAULT_USER_ID", "system")

# ===== REPORTING =====
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
