# Внешние зависимости
import os
import shutil
import tempfile
from email.message import Message
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
import httpx
import typer
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from pydantic import ValidationError
# Внутренние модули
from sign_service.src.core.exceptions import TransportMismatch
from sign_service.src.schemas import VerifyRecord


EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_TRANSPORT = 3

OCTET_STREAM = "application/octet-stream"
PEM_MARKER = "-----BEGIN CERTIFICATE-----"


def render_table(fields: Sequence[Tuple[str, str]]) -> str:
    """Таблица из трех строк: заголовки, разделитель, значения"""
    widths = [max(len(header), len(value)) for header, value in fields]

    header_row = " ".join(header.ljust(width) for (header, _), width in zip(fields, widths))
    separator_row = " ".join(("-" * len(header)).ljust(width) for (header, _), width in zip(fields, widths))
    value_row = " ".join(value.ljust(width) for (_, value), width in zip(fields, widths))

    return "\n".join((header_row, separator_row, value_row))


def certificate_thumbprint(value: str) -> str:
    """PEM сертификат -> SHA1 отпечаток, остальное без изменений"""
    if PEM_MARKER not in value:
        return value

    try:
        certificate = x509.load_pem_x509_certificate(value.encode())
    except ValueError as err:
        raise TransportMismatch(f"malformed signer certificate: {err}") from err

    return certificate.fingerprint(hashes.SHA1()).hex().upper()


def display_fields(record: VerifyRecord) -> List[Tuple[str, str]]:
    return [
        (name, certificate_thumbprint(value) if name == "SignerCertificate" else value)
        for name, value in record.fields()
    ]


def media_type(response: httpx.Response) -> str:
    return response.headers.get("content-type", "").split(";")[0].strip().lower()


def attachment_file_name(response: httpx.Response) -> Optional[str]:
    header = response.headers.get("content-disposition")
    if not header:
        return None

    message = Message()
    message["content-disposition"] = header
    if message.get_content_disposition() != "attachment":
        return None

    return message.get_filename()


def replace_file(file_path: Path, content: bytes) -> None:
    """Исходный файл заменяется только полностью записанной копией"""
    fd, temp_path = tempfile.mkstemp(dir=file_path.parent, prefix=f".{file_path.name}.")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        # mkstemp создает файл с правами 0600, сохраняем права исходного
        shutil.copymode(file_path, temp_path)
        os.replace(temp_path, file_path)

    except BaseException:
        os.unlink(temp_path)
        raise


def _error_detail(response: httpx.Response) -> str:
    if media_type(response) == "application/json":
        try:
            return str(response.json().get("detail", response.text))
        except ValueError:
            pass
    return response.text


def handle_response(response: httpx.Response, file_path: Path) -> int:
    """Разбор ответа сервиса, возвращает код завершения"""
    if not response.is_success:
        if response.status_code == 401:
            typer.echo(f"authentication failed: {response.headers.get('WWW-Authenticate', '')}", err=True)
            return EXIT_USAGE

        if media_type(response) == "text/plain":
            # Утилита отработала и сообщила об ошибке
            typer.echo(response.content, err=True, nl=False)
            return EXIT_FAILURE

        typer.echo(_error_detail(response), err=True)
        return EXIT_USAGE if response.status_code == 400 else EXIT_TRANSPORT

    file_name = attachment_file_name(response)

    if file_name is not None:
        if media_type(response) != OCTET_STREAM:
            raise TransportMismatch(f"wrong content response - {media_type(response)}")

        if file_name != file_path.name:
            raise TransportMismatch(f"wrong file - {file_name}")

        replace_file(file_path, response.content)
        return EXIT_SUCCESS

    if media_type(response) == "application/json":
        try:
            record = VerifyRecord.model_validate(response.json())
        except (ValueError, ValidationError) as err:
            raise TransportMismatch(f"malformed verification record: {err}") from err

        typer.echo(render_table(display_fields(record)))
        return EXIT_SUCCESS if record.is_valid else EXIT_FAILURE

    typer.echo(response.content, nl=False)
    return EXIT_SUCCESS
