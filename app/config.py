"""
Configuration for the Hotline Training Server.

Values are read from the environment once at import time.
"""

import os

# Server
PORT = int(os.environ.get("HOTLINE_PORT", 8000))
LOG_LEVEL = os.environ.get("HOTLINE_LOG_LEVEL", "INFO").upper()

# Database
DB_PATH = os.environ.get("HOTLINE_DB_PATH", "./data/hotline.db")
DATABASE_URL = os.environ.get("HOTLINE_DATABASE_URL")

# Shared secret for server-side callers such as the conversational agent.
# Empty rejects every internal caller.
INTERNAL_SERVICE_KEY = os.environ.get("INTERNAL_SERVICE_KEY", "")

# User ids provisioned as supervisors on first sight (comma-separated).
# Anyone else claiming the supervisor role is refused.
SUPERVISOR_USER_IDS = frozenset(
    uid.strip() for uid in os.environ.get("SUPERVISOR_USER_IDS", "").split(",") if uid.strip()
)

# Inference service (OpenAI-compatible chat completions)
INFERENCE_BASE_URL = os.environ.get("INFERENCE_BASE_URL", "https://api.openai.com/v1")
INFERENCE_API_KEY = os.environ.get("INFERENCE_API_KEY", "")
INFERENCE_MODEL = os.environ.get("INFERENCE_MODEL", "gpt-4o-mini")
INFERENCE_TIMEOUT_SECONDS = float(os.environ.get("INFERENCE_TIMEOUT_SECONDS", 30))

# Transcript writers
PERSIST_TIMEOUT_SECONDS = float(os.environ.get("PERSIST_TIMEOUT_SECONDS", 10))

# Pipeline limits
MAX_TURNS = 200
MAX_TURN_CHARS = 5000
MAX_TURN_ORDER = MAX_TURNS * 10
MAX_REPORTED_GAPS = 50
MIN_TURNS_FOR_EVALUATION = 2
MIN_TURNS_FOR_ANALYSIS = 3

# Client-side evaluation polling
EVALUATION_POLL_ATTEMPTS = 5
EVALUATION_POLL_DELAY_SECONDS = 2.0

# Agent-side flush
AGENT_FLUSH_ATTEMPTS = 2

# Flag listing
FLAG_LIST_LIMIT = 50
