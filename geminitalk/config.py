import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY") or "dev-secret-change-in-prod"
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL") or f"sqlite:///{BASE_DIR / 'data' / 'geminitalk.db'}"
    API_PREFIX = os.getenv("API_PREFIX", "/api")
    JWT_ALGORITHM = "HS256"
    TOKEN_EXPIRE_HOURS = int(os.getenv("TOKEN_EXPIRE_HOURS", 24))
    # password for the bootstrap admin account created on an empty users table
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD") or "1234"

    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    GEMINI_ENDPOINT = os.getenv("GEMINI_ENDPOINT", "https://generativelanguage.googleapis.com/v1beta")
    TRANSLATE_TIMEOUT = float(os.getenv("TRANSLATE_TIMEOUT", 15))

    LOG_FILE = os.getenv("LOG_FILE", "server.log")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    PORT = int(os.getenv("PORT", "3001"))
    DEBUG = os.getenv("DEBUG", "") == "1"
