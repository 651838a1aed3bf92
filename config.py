import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class ConfigurationError(Exception):
    """Raised when the application cannot start with the given settings."""


def _env_first(*names: str, default: Optional[str] = None) -> Optional[str]:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


@dataclass
class Settings:
    # API Ayarları
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(_env_first("PORT", "API_PORT", default="5000"))

    # MongoDB Ayarları
    mongodb_uri: Optional[str] = os.getenv("MONGODB_URI")
    mongodb_db_name: str = os.getenv("MONGODB_DB_NAME", "bookDirectory")
    server_selection_timeout_ms: int = int(os.getenv("MONGODB_SERVER_SELECTION_TIMEOUT_MS", "5000"))
    socket_timeout_ms: int = int(os.getenv("MONGODB_SOCKET_TIMEOUT_MS", "45000"))
    connect_timeout_ms: int = int(os.getenv("MONGODB_CONNECT_TIMEOUT_MS", "10000"))
    reconnect_delay: float = float(os.getenv("RECONNECT_DELAY", "5"))

    # CLI İstemci Ayarları
    api_url: str = os.getenv("BOOK_API_URL", "http://127.0.0.1:5000")
    api_timeout: float = float(os.getenv("API_TIMEOUT", "15"))

    # Uygulama Ayarları
    app_name: str = os.getenv("APP_NAME", "Book Directory API")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    environment: str = _env_first("ENVIRONMENT", "NODE_ENV", default="production")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    def store_uri(self) -> str:
        """Return the MongoDB connection string without its query parameters.

        Raises ConfigurationError when no connection string is configured.
        """
        if not self.mongodb_uri:
            raise ConfigurationError("MongoDB URI is not defined in environment variables")
        return self.mongodb_uri.split("?")[0]


settings = Settings()
