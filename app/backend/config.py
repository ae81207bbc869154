"""Configuration and environment variables."""

import os

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# --- Catalog ---
CATALOG_PATH = os.getenv("CATALOG_PATH", os.path.join(BASE_DIR, "data", "products.json"))

# --- HTTP ---
CORS_ORIGINS = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173",
).split(",")

# --- Response cache (milliseconds) ---
DEFAULT_CACHE_TTL_MS = int(os.getenv("DEFAULT_CACHE_TTL_MS", "300000"))  # 5 mins
STATIC_CACHE_TTL_MS = int(os.getenv("STATIC_CACHE_TTL_MS", "600000"))  # 10 mins
# 0 keeps the cache unbounded
CACHE_MAX_ENTRIES = int(os.getenv("CACHE_MAX_ENTRIES", "0")) or None

# --- Search ---
SUGGESTION_MIN_LENGTH = 2
DEFAULT_SUGGESTION_LIMIT = 8
DEFAULT_POPULAR_LIMIT = 10
DEFAULT_SEARCH_LIMIT = 50

# --- Logging ---
QUERY_LOG_FILE = os.getenv("QUERY_LOG_FILE", "search_logs.jsonl")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
