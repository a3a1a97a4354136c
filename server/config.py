"""
config.py — Server configuration.
"""
import os

from qkd_engine.config import DEFAULT_BIT_COUNT

# Network
HOST = os.environ.get("QKD_HOST", "0.0.0.0")
PORT = int(os.environ.get("QKD_PORT", "8000"))

# Logging
LOG_LEVEL = os.environ.get("QKD_LOG_LEVEL", "INFO").upper()

# Sessions
MAX_SESSIONS = int(os.environ.get("QKD_MAX_SESSIONS", "100"))
MAX_BIT_COUNT = 100_000
START_BIT_COUNT = DEFAULT_BIT_COUNT

# CORS
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "QKD_CORS_ORIGINS",
        "http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173",
    ).split(",")
    if origin.strip()
]
