import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

DB_URL = os.getenv("DB_URL", f"sqlite:///{(BASE_DIR / 'kyc.db').as_posix()}")

RISK_MEDIUM_THRESHOLD = int(os.getenv("RISK_MEDIUM_THRESHOLD", "30"))
RISK_HIGH_THRESHOLD = int(os.getenv("RISK_HIGH_THRESHOLD", "70"))

# Empty means unlimited reopens per record.
_max_reopens = os.getenv("MAX_REOPENS", "").strip()
MAX_REOPENS = int(_max_reopens) if _max_reopens else None

RECENT_ALERT_WINDOW_HOURS = int(os.getenv("RECENT_ALERT_WINDOW_HOURS", "24"))

EXTRACTION_URL = os.getenv("EXTRACTION_URL", "http://localhost:5001/api/extract")
EXTRACTION_TIMEOUT = int(os.getenv("EXTRACTION_TIMEOUT", "60"))
USE_MOCK_EXTRACTOR = os.getenv("USE_MOCK_EXTRACTOR", "false").lower() == "true"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
