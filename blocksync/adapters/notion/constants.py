"""Constants for the Notion sync engine."""

API_BASE_URL = "https://api.notion.com/v1"
API_VERSION = "2025-09-03"

# Hard API limits
MAX_BLOCKS_PER_WRITE = 100
MAX_PAGE_SIZE = 100
MAX_RICH_TEXT_LENGTH = 2000

# Notion allows ~3 requests per second per integration
RATE_LIMIT_DELAY_MS = 350
DELETE_CONCURRENCY = 3
DELETE_BATCH_DELAY_MS = 1000

# Retry defaults per operation family
CHECK_RETRIES = 2
CHECK_DELAY_MS = 500
CREATE_RETRIES = 3
CREATE_DELAY_MS = 800
DELETE_RETRIES = 3
DELETE_DELAY_MS = 500

HIGHLIGHT_SECTION_HEADER = "📝 Page Highlights"

RETRYABLE_STATUS_CODES = frozenset({409, 429})

# Backend messages that indicate a transient condition even on a non-retryable status
TRANSIENT_MESSAGE_PATTERNS = ("unsaved transactions", "datastoreinfraerror")

HEADING_TYPES = frozenset({"heading_1", "heading_2", "heading_3"})
MEDIA_TYPES = frozenset({"image", "video", "audio", "file", "pdf", "embed"})

MAX_DETAILED_FILTER_LOGS = 5
