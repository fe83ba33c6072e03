import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    def __init__(self):
        # AI backend
        self.GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
        self.GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-pro")
        self.GEMINI_BASE_URL = os.environ.get(
            "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
        )
        self.UPC_DATABASE_URL = os.environ.get("UPC_DATABASE_URL", "https://api.upcdatabase.org")

        # Price function client
        self.BACKEND_URL = os.environ.get(
            "BACKEND_URL", "http://localhost:8000/functions/scrape-prices"
        )
        self.REQUEST_TIMEOUT = int(os.environ.get("REQUEST_TIMEOUT", "30"))
        self.CACHE_TTL = int(os.environ.get("CACHE_TTL", "1800"))
        self.CACHE_MAX_ENTRIES = int(os.environ.get("CACHE_MAX_ENTRIES", "256"))

        # Retry configuration (empty-result retries)
        self.MAX_RETRIES = int(os.environ.get("MAX_RETRIES", "1"))
        self.RETRY_BACKOFF = float(os.environ.get("RETRY_BACKOFF", "0"))

        # Persisted state
        self.STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "file").lower()
        self.STORAGE_PATH = os.path.expanduser(
            os.environ.get("STORAGE_PATH", "~/.priceglass/storage.json")
        )
        self.REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
        self.STORAGE_NAMESPACE = os.environ.get("STORAGE_NAMESPACE", "priceglass")
        self.HISTORY_LIMIT = int(os.environ.get("HISTORY_LIMIT", "50"))

        # Location
        self.NOMINATIM_URL = os.environ.get("NOMINATIM_URL", "https://nominatim.openstreetmap.org")
        self.USER_LATITUDE = os.environ.get("USER_LATITUDE", "")
        self.USER_LONGITUDE = os.environ.get("USER_LONGITUDE", "")
        self.DEFAULT_COUNTRY = os.environ.get("DEFAULT_COUNTRY", "IN").upper()

        # Error tracking
        self.SENTRY_DSN = os.environ.get("SENTRY_DSN", "")
        self.ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")

        # Application settings
        self.DEBUG = os.environ.get("DEBUG", "false").lower() == "true"
        self.LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    @property
    def has_sentry(self) -> bool:
        return bool(self.SENTRY_DSN)

    @property
    def has_gemini(self) -> bool:
        return bool(self.GEMINI_API_KEY)


# Create an instance
config = Config()
