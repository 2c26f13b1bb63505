"""
StudyFlow Configuration
Database, auth and AI gateway settings
"""

import os

# MongoDB
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "studyflow_db")

# Bounded wait for every storage call (server selection, socket, connect)
DB_TIMEOUT_MS = int(os.getenv("DB_TIMEOUT_MS", "5000"))

# Read-only queries are retried on transient failures, writes never are
DB_READ_RETRIES = int(os.getenv("DB_READ_RETRIES", "3"))

# Optimistic concurrency retries for profile XP/streak updates
XP_UPDATE_MAX_RETRIES = int(os.getenv("XP_UPDATE_MAX_RETRIES", "5"))

# Identity provider token (shared secret)
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# AI text-generation gateway (OpenAI-compatible chat completions)
AI_GATEWAY_URL = os.getenv("AI_GATEWAY_URL", "https://ai.gateway.lovable.dev")
AI_GATEWAY_API_KEY = os.getenv("AI_GATEWAY_API_KEY", "")
AI_MODEL = os.getenv("AI_MODEL", "google/gemini-3-flash-preview")
AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "60"))
AI_TEMPERATURE = float(os.getenv("AI_TEMPERATURE", "0.7"))
AI_MAX_TOKENS = int(os.getenv("AI_MAX_TOKENS", "2000"))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
