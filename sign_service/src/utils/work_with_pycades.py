# Внешние зависимости
import re
import textwrap
from typing import Any, List
# Внутренние модули
from sign_service.src.core.exceptions import ToolInvocationFailure
from sign_service.src.utils.work_with_certstore import StoreCertificate


def _load_pycades() -> Any:
    # pycades ставится из КриптоПро SDK, а не из индекса пакетов
    try:
        import pycades
    except ImportError as err:
        raise ToolInvocationFailure(f"pycades is not available: {err}") from err

    return pycades


def clean_base64(data: str) -> str:
    """Очищает base64 от переносов строк и лишних пробелов"""
    return re.sub(r'\s+', '', data)


def to_pem(base64_der: str) -> str:
    body = "\n".join(textwrap.wrap(clean_base64(base64_der), 64))
    return f"-----BEGIN CERTIFICATE-----\n{body}\n-----END CERTIFICATE-----\n"


def _to_store_certificate(pycades: Any, certificate: Any) -> StoreCertificate:
    return StoreCertificate(
        thumbprint=certificate.Thumbprint.upper(),
        subject=certificate.SubjectName,
        pem=to_pem(certificate.Export(pycades.CADESCOM_ENCODE_BASE64))
    )


class PycadesCertificateStore:
    """Поиск сертификата по отпечатку в хранилище "текущий пользователь, личные" """

    def find_by_thumbprint(self, thumbprint: str) -> List[StoreCertificate]:
        pycades = _load_pycades()

        store = pycades.Store()
        store.Open(
            pycades.CAPICOM_CURRENT_USER_STORE,
            pycades.CAPICOM_MY_STORE,
            pycades.CAPICOM_STORE_OPEN_MAXIMUM_ALLOWED
        )

        try:
            found = store.Certificates.Find(pycades.CAPICOM_CERTIFICATE_FIND_SHA1_HASH, thumbprint)
            # Коллекции CAPICOM нумеруются с единицы
            return [
                _to_store_certificate(pycades, found.Item(index))
                for index in range(1, found.Count + 1)
            ]

        finally:
            store.Close()
