"""
Runtime configuration for Fleet NL2SQL.

Values are read from the environment (a local .env file is honoured).
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Remote SQL generation (Groq exposes an OpenAI-compatible API)
GROQ_API_KEY = os.getenv("GROQ_API_KEY", "")
GROQ_BASE_URL = os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1")
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "60"))

# Synthetic dataset
DATASET_SEED = int(os.getenv("DATASET_SEED", "42"))
DATASET_SIZE = int(os.getenv("DATASET_SIZE", "200"))

# Presentation timings
EXECUTION_DELAY = int(os.getenv("EXECUTION_DELAY_MS", "400")) / 1000.0
REVEAL_DELAY = int(os.getenv("REVEAL_DELAY_MS", "12")) / 1000.0

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
