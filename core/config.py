"""Central configuration for Text Search.

Configuration is organized into logical groups:
- Path configuration
- Embedding configuration
- Search configuration
- Ingestion configuration
- Logging configuration
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# =============================================================================
# PATH CONFIGURATION
# =============================================================================
DB_PATH = Path(os.getenv("TEXT_SEARCH_DB_PATH", "text_search.db"))

# =============================================================================
# EMBEDDING CONFIGURATION
# =============================================================================
# Small sentence-transformers model; 384-dimensional, mean pooled.
DEFAULT_EMBED_MODEL = os.getenv("TEXT_SEARCH_EMBED_MODEL", "all-MiniLM-L6-v2")
EMBED_DEVICE = os.getenv("TEXT_SEARCH_EMBED_DEVICE", "cpu")
NORMALIZE_EMBEDDINGS = (
    os.getenv("TEXT_SEARCH_NORMALIZE_EMBEDDINGS", "true").lower() == "true"
)

# =============================================================================
# SEARCH CONFIGURATION
# =============================================================================
DEFAULT_TOP_N = int(os.getenv("TEXT_SEARCH_TOP_N", "5"))

# =============================================================================
# INGESTION CONFIGURATION
# =============================================================================
DEFAULT_CLEAR_EXISTING = (
    os.getenv("TEXT_SEARCH_CLEAR_EXISTING", "true").lower() == "true"
)
# Sheet index or name; digits are treated as an index.
_sheet = os.getenv("TEXT_SEARCH_SHEET", "0")
SPREADSHEET_SHEET: int | str = int(_sheet) if _sheet.isdigit() else _sheet
BULK_PROGRESS_EVERY = int(os.getenv("TEXT_SEARCH_BULK_PROGRESS_EVERY", "10"))

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================
LOG_LEVEL = os.getenv("TEXT_SEARCH_LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("TEXT_SEARCH_LOG_FORMAT", "plain")  # plain|json
LOG_FILE_PATH = os.getenv("TEXT_SEARCH_LOG_FILE", "")
LOG_REDACT_TEXT = os.getenv("TEXT_SEARCH_LOG_REDACT_TEXT", "false").lower() == "true"
