import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env next to this file
BASE_DIR = Path(__file__).resolve().parent
load_dotenv(BASE_DIR / ".env")

class Settings:
    LEONARDO_API_URL: str = os.getenv("LEONARDO_API_URL", "https://cloud.leonardo.ai/api/rest/v1")

    LEONARDO_API_KEY: str | None = os.getenv("LEONARDO_API_KEY")

    REQUEST_TIMEOUT: float = 60.0
    UPLOAD_TIMEOUT: float = 120.0  # upload tickets expire after ~2 minutes

    POLL_INTERVAL: float = 10.0  # seconds
    POLL_MAX_ATTEMPTS: int = 30

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

settings = Settings()
