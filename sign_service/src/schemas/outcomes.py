# Внешние зависимости
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class SignSucceeded:
    signed_file_bytes: bytes


@dataclass(frozen=True)
class VerifyResult:
    certificate: str
    status: str
    status_message: str
    path: str


@dataclass(frozen=True)
class ToolFailed:
    exit_code: int
    stdout: str
    stderr: str

    @property
    def diagnostics(self) -> str:
        return self.stdout + self.stderr


SigningOutcome = Union[SignSucceeded, VerifyResult, ToolFailed]
