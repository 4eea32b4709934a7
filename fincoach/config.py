import os
from dotenv import load_dotenv

load_dotenv()
load_dotenv(".env.local")

# ---------- DATABASE ----------
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./fincoach.db")

# ---------- OPENAI ----------
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_PROJECT = os.getenv("OPENAI_PROJECT")
OPENAI_ORG_ID = os.getenv("OPENAI_ORG_ID")
AI_MAX_TOKENS = int(os.getenv("AI_MAX_TOKENS", "1024"))

# ---------- PLAID ----------
PLAID_CLIENT_ID = os.getenv("PLAID_CLIENT_ID")
PLAID_SECRET = os.getenv("PLAID_SECRET")
PLAID_ENV = os.getenv("PLAID_ENV", "sandbox")
PLAID_PROXY_URL = os.getenv("PLAID_PROXY_URL", "http://localhost:8000")
PLAID_TOKEN_STORE = os.getenv("PLAID_TOKEN_STORE", "sql")  # "sql" | "redis"
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")

# ---------- SERVER ----------
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", "8000"))
