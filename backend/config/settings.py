"""
Service settings, read from the environment (.env supported).
"""
import os
from typing import List

from dotenv import load_dotenv
load_dotenv()


DATABASE_URL = os.getenv("DATABASE_URL")

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))

CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]

# Network read defaults
NETWORK_DEFAULT_MIN_STRENGTH = float(os.getenv("NETWORK_DEFAULT_MIN_STRENGTH", "0.1"))
NETWORK_DEFAULT_LIMIT = int(os.getenv("NETWORK_DEFAULT_LIMIT", "200"))
NETWORK_MAX_LIMIT = int(os.getenv("NETWORK_MAX_LIMIT", "500"))
NETWORK_ROW_FACTOR = 3  # rows read per requested node
NEIGHBORS_DEFAULT_LIMIT = 10


def get_secret_key() -> str:
    """SECRET_KEY is read per call so it can be rotated without a restart."""
    secret_key = os.getenv("SECRET_KEY")
    if not secret_key:
        raise RuntimeError("CRITICAL: SECRET_KEY environment variable must be set")
    return secret_key
