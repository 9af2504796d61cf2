"""
Настройки веб-приложения.

Берутся из переменных окружения (CURL_APP_*), по умолчанию как раньше:
0.0.0.0:7700 и таймаут 30 секунд.
"""
import logging
import os
from dataclasses import dataclass

_TRUE = ("1", "true", "yes", "on")


@dataclass
class Settings:
    host: str = "0.0.0.0"
    port: int = 7700
    debug: bool = False
    request_timeout: float = 30.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        CURL_APP_HOST, CURL_APP_PORT, CURL_APP_DEBUG,
        CURL_APP_TIMEOUT, CURL_APP_LOG_LEVEL
        """
        return cls(
            host=os.getenv("CURL_APP_HOST", "0.0.0.0"),
            port=int(os.getenv("CURL_APP_PORT", "7700")),
            debug=os.getenv("CURL_APP_DEBUG", "false").lower() in _TRUE,
            request_timeout=float(os.getenv("CURL_APP_TIMEOUT", "30")),
            log_level=os.getenv("CURL_APP_LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> None:
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 1-65535.")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Unknown log level: {self.log_level}")
