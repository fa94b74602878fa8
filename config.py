# config.py
import os

# Source site
BASE_URL = os.getenv("SINHALASUB_BASE_URL", "https://sinhalasub.lk").rstrip("/")

# Browser identity sent with every upstream request
HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}

# Fetching
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "15"))
MAX_REDIRECTS = int(os.getenv("MAX_REDIRECTS", "5"))
MAX_ATTEMPTS = int(os.getenv("MAX_ATTEMPTS", "3"))
RETRY_BACKOFF = float(os.getenv("RETRY_BACKOFF", "1.0"))

# Caching
CACHE_TTL = int(os.getenv("CACHE_TTL", "3600"))
CACHE_CHECK_PERIOD = int(os.getenv("CACHE_CHECK_PERIOD", "120"))

# Listing pages
LATEST_LIMIT = int(os.getenv("LATEST_LIMIT", "24"))

# Server
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "5000"))

API_VERSION = "2.0.0"
