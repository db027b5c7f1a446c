# Внешние зависимости
import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv
# Внутренние модули
from sign_service.src.core.exceptions import ValidationFailure


DEFAULT_CONFIG_PATH = os.path.join("~", ".config", "signtool", "signtool.env")


@dataclass(frozen=True)
class ClientConfig:
    endpoint: str
    authorization: str

    @property
    def scheme(self) -> str:
        return self.authorization.split(" ", 1)[0]

    @classmethod
    def load(cls, path: Optional[str] = None) -> "ClientConfig":
        """Адрес сервиса и заголовок Authorization из файла настроек и окружения"""
        path = os.path.expanduser(path or os.getenv("SIGNTOOL_CONFIG", DEFAULT_CONFIG_PATH))
        if os.path.isfile(path):
            load_dotenv(path)

        endpoint = os.getenv("SIGNTOOL_ENDPOINT")
        authorization = os.getenv("SIGNTOOL_AUTHORIZATION")

        if not endpoint:
            raise ValidationFailure(f"SIGNTOOL_ENDPOINT is not configured ({path})")

        if not authorization:
            raise ValidationFailure(f"SIGNTOOL_AUTHORIZATION is not configured ({path})")

        # Ожидается "<схема> <учетные данные>"
        scheme, _, credential = authorization.partition(" ")
        if not scheme or not credential:
            raise ValidationFailure("SIGNTOOL_AUTHORIZATION should be '<scheme> <credentials>'")

        return cls(endpoint=endpoint, authorization=authorization)
