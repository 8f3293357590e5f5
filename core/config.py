# core/config.py
import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    API_URL = os.getenv("PROPCONNECT_API_URL", "http://localhost:5000")
    USE_MOCK_DATA = os.getenv("USE_MOCK_DATA", "False").lower() == "true"
    CACHE_PATH = os.getenv("CACHE_PATH", "propconnect_cache.db")
    REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "10"))
    MOCK_LATENCY = float(os.getenv("MOCK_LATENCY", "0.5"))

    AUTO_REFRESH_INTERVAL = float(os.getenv("AUTO_REFRESH_INTERVAL", "60"))
    TYPING_TIMEOUT = float(os.getenv("TYPING_TIMEOUT", "5"))
    ASSISTANT_DELAY_MIN = float(os.getenv("ASSISTANT_DELAY_MIN", "0.8"))
    ASSISTANT_DELAY_MAX = float(os.getenv("ASSISTANT_DELAY_MAX", "2.8"))

    CHAT_URL = os.getenv("CHAT_URL", "ws://localhost:5000/chat")
    MOCK_EVENTS_ENABLED = os.getenv("MOCK_EVENTS_ENABLED", "True").lower() == "true"
    MOCK_EVENT_INTERVAL = float(os.getenv("MOCK_EVENT_INTERVAL", "10"))
    MOCK_EVENT_PROBABILITY = float(os.getenv("MOCK_EVENT_PROBABILITY", "0.2"))

    PROPCONNECT_EMAIL = os.getenv("PROPCONNECT_EMAIL", "")
    PROPCONNECT_PASSWORD = os.getenv("PROPCONNECT_PASSWORD", "")

    OFFLINE_TOKEN_SECRET = os.getenv("OFFLINE_TOKEN_SECRET", "propconnect-offline")
    OFFLINE_TOKEN_ALGORITHM = "HS256"

    @classmethod
    def has_credentials(cls) -> bool:
        return bool(cls.PROPCONNECT_EMAIL and cls.PROPCONNECT_PASSWORD)

    @classmethod
    def mode_name(cls) -> str:
        return "fixtures" if cls.USE_MOCK_DATA else "remote"


config = Config()
