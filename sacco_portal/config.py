import os

from dotenv import load_dotenv

load_dotenv()


def _optional_float(name):
    value = os.environ.get(name)
    return float(value) if value else None


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")
    SACCO_API_URL = os.environ.get("SACCO_API_URL", "http://localhost:8080/api")
    # None means no timeout
    SACCO_API_TIMEOUT = _optional_float("SACCO_API_TIMEOUT")
    # How long a page waits for its loads before rendering the spinner.
    PAGE_RENDER_TIMEOUT = _optional_float("PAGE_RENDER_TIMEOUT")
    SACCO_API_TRANSPORT = None
    SESSION_LIFETIME_SECONDS = int(os.environ.get("SESSION_LIFETIME_SECONDS", 3600))
    EXTRAS_PAGE_SIZE = int(os.environ.get("EXTRAS_PAGE_SIZE", 10))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SACCO_API_URL = "http://backend.test/api"
    SACCO_API_TIMEOUT = None
    PAGE_RENDER_TIMEOUT = None
