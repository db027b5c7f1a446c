# Внешние зависимости
from enum import Enum
from typing import Any, Dict, List, Tuple
from pydantic import BaseModel, ConfigDict, Field


class Command(str, Enum):
    SIGN = "sign"
    VERIFY = "verify"

    @classmethod
    def parse(cls, value: str) -> "Command":
        return cls(value.lower())


class VerifyStatus(str, Enum):
    """Полный набор состояний проверки подписи (SignatureStatus)"""
    VALID = "Valid"
    UNKNOWN_ERROR = "UnknownError"
    NOT_SIGNED = "NotSigned"
    HASH_MISMATCH = "HashMismatch"
    NOT_TRUSTED = "NotTrusted"
    NOT_SUPPORTED_FILE_FORMAT = "NotSupportedFileFormat"
    INCOMPATIBLE = "Incompatible"

    @classmethod
    def is_valid(cls, status: str) -> bool:
        # Неизвестное состояние никогда не считается успехом
        return status == cls.VALID.value

    @classmethod
    def symbolic(cls, value: Any) -> str:
        """Числовое значение перечисления -> символьное имя"""
        if isinstance(value, Enum):
            return str(value.value) if isinstance(value, cls) else value.name

        if isinstance(value, int) and not isinstance(value, bool):
            members = list(cls)
            return members[value].value if 0 <= value < len(members) else str(value)

        return "" if value is None else str(value)


# Схема входящего запроса (сами байты файла лежат в рабочем каталоге)
class SigningRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    command: Command
    file_name: str
    options: Tuple[str, ...] = ()
    arguments: Tuple[Tuple[str, str], ...] = ()


# Схема результата проверки, порядок полей - часть протокола
class VerifyRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    signer_certificate: str = Field(default="", alias="SignerCertificate")
    status: str = Field(alias="Status")
    status_message: str = Field(default="", alias="StatusMessage")
    path: str = Field(default="", alias="Path")

    @property
    def is_valid(self) -> bool:
        return VerifyStatus.is_valid(self.status)

    def to_wire(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True)

    def fields(self) -> List[Tuple[str, str]]:
        return list(self.to_wire().items())
