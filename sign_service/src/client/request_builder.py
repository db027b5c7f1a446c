# Внешние зависимости
from pathlib import Path
from typing import Iterable, List, Mapping, Tuple
import httpx
# Внутренние модули
from sign_service.src.client.config import ClientConfig
from sign_service.src.core.exceptions import ValidationFailure
from sign_service.src.schemas import Command


# Флаги и именованные аргументы, которые понимает клиент
CLIENT_FLAGS = ("a", "as", "q", "v", "r", "u", "ph", "uw", "debug")
CLIENT_ARGUMENTS = ("sha1", "fd", "td", "d", "t", "tr")

FILE_FIELD = "formFile"
OCTET_STREAM = "application/octet-stream"


def build_query(command: str, options: Iterable[str], arguments: Mapping[str, str]) -> List[Tuple[str, str]]:
    query = [("command", command)]
    query.extend(arguments.items())

    options = list(options)
    if options:
        query.append(("options", ",".join(options)))

    return query


def _check_inputs(command: str, options: Iterable[str], arguments: Mapping[str, str]) -> None:
    try:
        Command.parse(command or "")
    except ValueError:
        raise ValidationFailure(f"command should be sign or verify, got {command!r}", token=command or "")

    for option in options:
        if option not in CLIENT_FLAGS:
            raise ValidationFailure(f"invalid option {option}", token=option)

    for name, value in arguments.items():
        if name not in CLIENT_ARGUMENTS:
            raise ValidationFailure(f"invalid argument {name}", token=name)
        if not value:
            raise ValidationFailure(f"missing value for argument {name}", token=name)


def build_request(
        config: ClientConfig,
        command: str,
        options: Iterable[str],
        arguments: Mapping[str, str],
        file_path: Path
) -> httpx.Request:
    """Один POST: строка запроса с командой и аргументами + файл в multipart"""
    options = list(options)
    _check_inputs(command, options, arguments)

    if not file_path.is_file():
        raise ValidationFailure(f"file not found {file_path}", token=str(file_path))

    # Файл читается целиком до отправки
    content = file_path.read_bytes()

    return httpx.Request(
        "POST",
        config.endpoint,
        params=build_query(command.lower(), options, arguments),
        headers={"Authorization": config.authorization},
        files={FILE_FIELD: (file_path.name, content, OCTET_STREAM)}
    )
