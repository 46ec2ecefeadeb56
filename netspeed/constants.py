"""
Shared constants used across all measurement modules.

Centralises magic numbers, default headers, and tunables so they live in
exactly one place.
"""

# ---------------------------------------------------------------------------
# HTTP headers (browser-like; some CDNs reject bare clients)
# ---------------------------------------------------------------------------

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/144.0.0.0 Safari/537.36"
)

COMMON_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
}

# ---------------------------------------------------------------------------
# Remote targets
# ---------------------------------------------------------------------------

# Large, CORS-friendly files on high-speed public CDNs.
DOWNLOAD_TARGET_URLS = (
    "https://upload.wikimedia.org/wikipedia/commons/f/ff/Pizigani_1367_Chart_10MB.jpg",
    "https://images.pexels.com/photos/248797/pexels-photo-248797.jpeg",
    "https://upload.wikimedia.org/wikipedia/commons/2/2d/Snake_River_%285mb%29.jpg",
    "https://upload.wikimedia.org/wikipedia/commons/d/d6/Warp_trails.jpg",
)

PING_TARGET_URL = "https://www.google.com/favicon.ico"

CACHE_BUST_PARAM = "t"

# ---------------------------------------------------------------------------
# Connection limits
# ---------------------------------------------------------------------------

MIN_CONNECTIONS = 1
MAX_CONNECTIONS = 16
DEFAULT_CONNECTIONS = 2

# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------

PING_TIMEOUT = 2.0               # hard deadline for the latency probe
DEFAULT_DOWNLOAD_DURATION = 8.0  # seconds
DEFAULT_UPLOAD_DURATION = 5.0    # seconds
MIN_DURATION = 1.0
MAX_DURATION = 120.0

REPORT_INTERVAL = 0.15           # min seconds between download samples
RETRY_COOLDOWN = 0.2             # pause after a failed target before rotating
CONNECT_TIMEOUT = 5.0
READ_TIMEOUT = 5.0               # per chunk read; also bounded by the window
STOP_GRACE = 1.0                 # wait for loops to notice the stop flag

UPLOAD_TICK = 0.1                # 100 ms between synthetic upload samples

# ---------------------------------------------------------------------------
# Data transfer
# ---------------------------------------------------------------------------

CHUNK_SIZE = 64 * 1024

# ---------------------------------------------------------------------------
# Upload model
# ---------------------------------------------------------------------------

FALLBACK_BASELINE_MBPS = 25.0
UPLOAD_RAMP_FACTOR = 6           # full ramp at 1/6 of the duration
UPLOAD_WOBBLE = 0.1              # +/-5 % jitter on progress samples
MIN_UPLOAD_SAMPLE_MBPS = 0.1

# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

NETINFO_TIMEOUT = 3.0
ANALYSIS_TIMEOUT = 20.0
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"
