# Внешние зависимости
from dataclasses import dataclass, field
from typing import Optional, Tuple
from dotenv import load_dotenv
import os
import tempfile
import logging
# Внутренние модули
from sign_service.src.core.logger import setup_logger


load_dotenv()


def _env_list(name: str, default: str = "") -> Tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Config:
    """Настройки сервера, читаются один раз при старте и больше не меняются"""
    # Допустимые значения заголовка Authorization (несколько - для ротации)
    accepted_authorizations: Tuple[str, ...] = field(
        default_factory=lambda: _env_list("SIGNTOOL_AUTHORIZATION")
    )
    realm: str = field(default_factory=lambda: os.getenv("SIGNTOOL_REALM", "signtool"))
    auth_scheme: str = field(default_factory=lambda: os.getenv("SIGNTOOL_AUTH_SCHEME", "Basic"))
    endpoint: str = field(default_factory=lambda: os.getenv("SIGNTOOL_ENDPOINT", "/signtool"))
    staging_root: str = field(
        default_factory=lambda: os.getenv(
            "SIGNTOOL_STAGING_ROOT",
            os.path.join(tempfile.gettempdir(), "signtool-staging")
        )
    )
    allowed_options: Tuple[str, ...] = field(
        default_factory=lambda: _env_list("SIGNTOOL_OPTIONS", "q,a")
    )
    # signtool - вызов утилиты напрямую, certstore - хранилище сертификатов + PowerShell
    backend: str = field(default_factory=lambda: os.getenv("SIGNTOOL_BACKEND", "signtool"))
    signtool_path: str = field(default_factory=lambda: os.getenv("SIGNTOOL_PATH", "signtool.exe"))
    powershell_path: str = field(
        default_factory=lambda: os.getenv("SIGNTOOL_POWERSHELL", "powershell.exe")
    )
    host: str = field(default_factory=lambda: os.getenv("SIGNTOOL_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("SIGNTOOL_PORT", "8000")))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_dir: str = field(default_factory=lambda: os.getenv("LOG_DIR", "logs"))
    log_file: str = field(default_factory=lambda: os.getenv("LOG_FILE", "web_log"))

    def __post_init__(self):
        if self.backend not in ("signtool", "certstore"):
            raise ValueError(f"unknown signing backend {self.backend}")

        setup_logger(level=self.log_level, log_dir=self.log_dir, log_file=self.log_file)
        self.logger.info("Configuration initialized")

        if not self.accepted_authorizations:
            self.logger.warning("No accepted authorization values configured, every request will be rejected")

    @property
    def logger(self) -> logging.Logger:
        return logging.getLogger("sign_service")

    @property
    def challenge(self) -> str:
        return f'{self.auth_scheme} realm="{self.realm}"'

    def __str__(self) -> str:
        return (
            f"Config(endpoint={self.endpoint}, backend={self.backend}, "
            f"staging_root={self.staging_root}, credentials={len(self.accepted_authorizations)})"
        )


_instance: Optional[Config] = None


def get_config() -> Config:
    global _instance
    if _instance is None:
        _instance = Config()

    return _instance
