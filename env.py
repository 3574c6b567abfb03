import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _as_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


# Environment variables for LabelAnalyzer-API
PORT = int(os.getenv("PORT", 8000))

# database url, sqlite file by default
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./label_analyzer.db")
DATABASE_ECHO = _as_bool(os.getenv("DATABASE_ECHO"), False)

# API keys and model names for the label analysis LLM
# for google ai studio
LLM_API_KEY = os.getenv("LLM_API_KEY", None)
LLM_MODEL_NAME = os.getenv("LLM_MODEL_NAME", "gemini-2.0-flash")
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", 0.1))
LLM_MAX_OUTPUT_TOKENS = int(os.getenv("LLM_MAX_OUTPUT_TOKENS", 3000))

# Timeout for one label analysis call in seconds
ANALYSIS_TIMEOUT = float(os.getenv("ANALYSIS_TIMEOUT", 30))

# langsmith keys optional, the langsmith client reads them from the environment
LANGSMITH_TRACING = _as_bool(os.getenv("LANGSMITH_TRACING"), False)
LANGSMITH_ENDPOINT = os.getenv("LANGSMITH_ENDPOINT", "https://api.smith.langchain.com")
LANGSMITH_API_KEY = os.getenv("LANGSMITH_API_KEY", None)
LANGSMITH_PROJECT = os.getenv("LANGSMITH_PROJECT", None)

# app settings
OFFLINE_MODE = _as_bool(os.getenv("OFFLINE_MODE"), False)
KEEP_RAW_PAYLOAD = _as_bool(os.getenv("KEEP_RAW_PAYLOAD"), False)
SEED_SAMPLE_DATA = _as_bool(os.getenv("SEED_SAMPLE_DATA"), False)
TIMEZONE = os.getenv("TIMEZONE", "UTC")

# logging
LOG_FILE = os.getenv("LOG_FILE", "label_analyzer.log")
