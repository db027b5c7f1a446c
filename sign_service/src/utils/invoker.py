# Внешние зависимости
from typing import Protocol
# Внутренние модули
from sign_service.src.core.config import Config
from sign_service.src.schemas import SigningRequest, SigningOutcome
from sign_service.src.utils.staging import StagedFile


class SigningInvoker(Protocol):
    async def invoke(self, request: SigningRequest, staged: StagedFile) -> SigningOutcome:
        ...


def create_invoker(config: Config) -> SigningInvoker:
    """Выбор стратегии подписи по настройке SIGNTOOL_BACKEND"""
    if config.backend == "certstore":
        from sign_service.src.utils.work_with_certstore import CertificateStoreInvoker
        from sign_service.src.utils.work_with_powershell import PowerShellHost
        from sign_service.src.utils.work_with_pycades import PycadesCertificateStore

        return CertificateStoreInvoker(PycadesCertificateStore(), PowerShellHost(config.powershell_path))

    from sign_service.src.utils.work_with_signtool import SignToolInvoker

    return SignToolInvoker(config.signtool_path)
