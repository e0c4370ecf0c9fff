"""Configuration constants.

Centralizes magic numbers and configuration values shared across modules.
"""

# Session defaults
DEFAULT_SESSION_TITLE = "New Chat"
SESSION_TITLE_MAX_LENGTH = 50  # Characters kept when titling from the first message

# Message store
TEMP_ID_PREFIX = "local-"  # Client-generated ids for optimistic messages

# Fence parsing
DEFAULT_CODE_LANGUAGE = "text"  # Language used when a fence carries no tag

# Model gateway defaults
TOGETHER_BASE_URL = "https://api.together.xyz/v1"
DEFAULT_MODEL = "mistralai/Mixtral-8x7B-Instruct-v0.1"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.4
DEFAULT_TOP_P = 0.2
DEFAULT_FREQUENCY_PENALTY = 0.5
DEFAULT_PRESENCE_PENALTY = 0.5

# Persistence defaults
DEFAULT_BACKEND = "sqlite"
DEFAULT_DB_PATH = "./codechat.db"
DEFAULT_USER_ID = "local"

# Table names shared by the repositories and the real-time bus
SESSIONS_TABLE = "chat_sessions"
MESSAGES_TABLE = "messages"
