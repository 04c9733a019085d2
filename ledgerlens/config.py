"""Configuration settings for the application."""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Database
DATABASE_URL = os.getenv("DATABASE_URL") or (
    f"postgresql+psycopg2://"
    f"{os.getenv('POSTGRES_USER')}:{os.getenv('POSTGRES_PASSWORD')}@"
    f"{os.getenv('POSTGRES_HOST')}:{os.getenv('POSTGRES_PORT')}/"
    f"{os.getenv('POSTGRES_DB')}"
)

# OpenAI API Settings
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "20"))
AI_TEMPERATURE = float(os.getenv("AI_TEMPERATURE", "0.3"))
AI_MAX_TOKENS = int(os.getenv("AI_MAX_TOKENS", "1500"))

# Validation
BALANCE_TOLERANCE = float(os.getenv("BALANCE_TOLERANCE", "0.05"))  # share of total assets

# Debt-to-equity risk bands (medium, high)
RISK_DE_MEDIUM = float(os.getenv("RISK_DE_MEDIUM", "0.5"))
RISK_DE_HIGH = float(os.getenv("RISK_DE_HIGH", "1.0"))

# Uploads
MAX_FILE_SIZE = int(os.getenv("MAX_FILE_SIZE", str(10 * 1024 * 1024)))
ALLOWED_CONTENT_TYPES = ["application/pdf"]

# Chat Settings
CHAT_HISTORY_CONTEXT = int(os.getenv("CHAT_HISTORY_CONTEXT", "5"))  # previous messages sent as context

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
