# Внешние зависимости
import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol
# Внутренние модули
from sign_service.src.core.exceptions import CertificateLookupError, ValidationFailure
from sign_service.src.core.logger import logger
from sign_service.src.schemas import (
    Command, SigningRequest, SigningOutcome, SignSucceeded, ToolFailed, VerifyResult, VerifyStatus
)
from sign_service.src.utils.staging import StagedFile, read_staged


DEFAULT_DIGEST_ALGORITHM = "SHA256"


@dataclass(frozen=True)
class StoreCertificate:
    thumbprint: str
    subject: str
    pem: str


class CertificateStore(Protocol):
    def find_by_thumbprint(self, thumbprint: str) -> List[StoreCertificate]:
        ...


class AutomationHost(Protocol):
    async def sign_file(
            self,
            path: str,
            certificate: StoreCertificate,
            digest_algorithm: str,
            timestamp_server: Optional[str]
    ) -> Dict[str, Any]:
        ...

    async def verify_file(self, path: str) -> Dict[str, Any]:
        ...


def _first_argument(request: SigningRequest, *names: str) -> Optional[str]:
    for name in names:
        for key, value in request.arguments:
            if key == name:
                return value
    return None


def _project(value: Any, staged: StagedFile) -> str:
    if isinstance(value, str):
        return staged.redact(value)
    return VerifyStatus.symbolic(value)


def project_verify_result(properties: Mapping[str, Any], staged: StagedFile) -> VerifyResult:
    """Свойства результата проверки -> VerifyResult без внутренних путей сервера"""
    return VerifyResult(
        certificate=_project(properties.get("SignerCertificate"), staged),
        status=VerifyStatus.symbolic(properties.get("Status")),
        status_message=_project(properties.get("StatusMessage"), staged),
        # Path всегда имя файла клиента
        path=staged.file_name
    )


class CertificateStoreInvoker:
    """Подпись сертификатом из хранилища "текущий пользователь, личные" через PowerShell"""

    def __init__(self, store: CertificateStore, host: AutomationHost):
        self.store = store
        self.host = host

    async def resolve_certificate(self, thumbprint: str) -> StoreCertificate:
        matches = await asyncio.to_thread(self.store.find_by_thumbprint, thumbprint)

        if not matches:
            raise CertificateLookupError(f"certificate {thumbprint} not found", token=thumbprint)

        if len(matches) > 1:
            raise CertificateLookupError(
                f"certificate {thumbprint} is ambiguous, {len(matches)} matches", token=thumbprint
            )

        return matches[0]

    async def invoke(self, request: SigningRequest, staged: StagedFile) -> SigningOutcome:
        if request.command is Command.VERIFY:
            properties = await self.host.verify_file(staged.full_path)
            return project_verify_result(properties, staged)

        thumbprint = _first_argument(request, "sha1")
        if thumbprint is None:
            raise ValidationFailure("argument sha1 is required for sign", token="sha1")

        certificate = await self.resolve_certificate(thumbprint)
        logger.info(f"Signing {staged.file_name} with certificate {certificate.thumbprint} ({certificate.subject})")

        properties = await self.host.sign_file(
            staged.full_path,
            certificate,
            _first_argument(request, "fd") or DEFAULT_DIGEST_ALGORITHM,
            _first_argument(request, "tr", "t")
        )

        status = VerifyStatus.symbolic(properties.get("Status"))
        if VerifyStatus.is_valid(status):
            return SignSucceeded(signed_file_bytes=await read_staged(staged))

        message = _project(properties.get("StatusMessage"), staged)
        return ToolFailed(exit_code=1, stdout=f"{status}: {message}\n", stderr="")
