"""
Application constants and magic number definitions.

This module centralizes all hardcoded values for better maintainability.
"""

from typing import Dict, List, Tuple


# =============================================================================
# Nightscout API
# =============================================================================

# Remote paths, relative to the site's base URL
STATUS_PATH = "/api/v1/status.json"
ENTRIES_PATH = "/api/v1/entries/sgv.json"
PEBBLE_PATH = "/pebble"

# Number of entries to request for delta calculation
ENTRIES_COUNT = 2

# Default HTTP timeout in seconds
DEFAULT_HTTP_TIMEOUT = 10

# Host used when a bare name does not belong to a known member
DEFAULT_FALLBACK_HOST_TEMPLATE = "https://{name}.herokuapp.com"


# =============================================================================
# Unit Conversion
# =============================================================================

# mg/dL per mmol/L
MGDL_PER_MMOL = 18.0182

# Decimal places kept for mmol/L values
MMOL_PRECISION = 1


# =============================================================================
# Trend Arrows
# =============================================================================

# Indexed by trend code; 0 means no arrow
TREND_ARROWS: Tuple[str, ...] = (
    "",
    "↟",  # DoubleUp
    "↑",  # SingleUp
    "↗",  # FortyFiveUp
    "→",  # Flat
    "↘",  # FortyFiveDown
    "↓",  # SingleDown
    "↡",  # DoubleDown
    "↮",  # NOT COMPUTABLE
    "↺",  # RATE OUT OF RANGE
)

# Nightscout direction names mapped to trend codes
TREND_DIRECTIONS: Dict[str, int] = {
    "NONE": 0,
    "DoubleUp": 1,
    "SingleUp": 2,
    "FortyFiveUp": 3,
    "Flat": 4,
    "FortyFiveDown": 5,
    "SingleDown": 6,
    "DoubleDown": 7,
    "NOT COMPUTABLE": 8,
    "RATE OUT OF RANGE": 9,
}


# =============================================================================
# Presentation
# =============================================================================

# Readings older than this are flagged as stale
STALE_AFTER_MINUTES = 15

STALE_BANNER_TEMPLATE = "**BG data is more than {minutes} minutes old**"

FOOTER_TEXT = "measured"
FOOTER_ICON_URL = "https://github.com/nightscout/cgm-remote-monitor/raw/master/static/images/large.png"

# Zone colors (RGB)
ZONE_COLORS: Dict[str, List[int]] = {
    "danger": [255, 0, 0],    # Red
    "warn": [255, 200, 0],    # Orange
    "ok": [0, 255, 0],        # Green
}

# Emoji posted for each reaction trigger
REACTION_EMOJI: Dict[str, str] = {
    "sixtyNine": "\U0001F60F",   # :smirk:
    "oneHundred": "\U0001F4AF",  # :100:
}


# =============================================================================
# Logging Constants
# =============================================================================

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LOG_LEVEL = "INFO"

# Default command prefix used in user-facing hints
DEFAULT_COMMAND_PREFIX = "nightscout"
