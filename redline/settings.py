# settings.py
import os

from dotenv import load_dotenv

load_dotenv()

# Model configuration
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
MODEL_BASE_URL = os.getenv("MODEL_BASE_URL", "https://api.anthropic.com")
ANTHROPIC_VERSION = os.getenv("ANTHROPIC_VERSION", "2023-06-01")
MODEL_NAME = os.getenv("MODEL_NAME", "claude-sonnet-4-20250514")

ANALYSIS_MAX_TOKENS = int(os.getenv("ANALYSIS_MAX_TOKENS", "4000"))
EMAIL_MAX_TOKENS = int(os.getenv("EMAIL_MAX_TOKENS", "1500"))
MODEL_TIMEOUT_SECONDS = float(os.getenv("MODEL_TIMEOUT_SECONDS", "120"))

# Progress indicator cadence while an analysis is outstanding
PHASE_INTERVAL_SECONDS = float(os.getenv("PHASE_INTERVAL_SECONDS", "4"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
