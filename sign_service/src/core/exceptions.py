# Иерархия ошибок сервиса подписи и клиента


class SignServiceError(Exception):
    """Базовая ошибка"""


class AuthenticationFailure(SignServiceError):
    """Заголовок Authorization не совпал ни с одним из допустимых значений"""


class ValidationFailure(SignServiceError):
    """Ошибка вызывающей стороны: имя файла, флаг, аргумент, команда"""

    def __init__(self, message: str, token: str = ""):
        super().__init__(message)
        self.token = token


class CertificateLookupError(ValidationFailure):
    """В хранилище не найден ровно один сертификат с указанным отпечатком"""


class ToolInvocationFailure(SignServiceError):
    """Внешний процесс не удалось запустить"""


class TransportMismatch(SignServiceError):
    """Ответ сервера не соответствует запросу (тип содержимого, имя файла)"""
