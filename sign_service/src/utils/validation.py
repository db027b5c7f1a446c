# Внешние зависимости
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple
from pydantic import AnyUrl, TypeAdapter, ValidationError
# Внутренние модули
from sign_service.src.core.exceptions import ValidationFailure
from sign_service.src.schemas import Command, SigningRequest


class ArgumentKind(str, Enum):
    FLAG = "flag"
    HEX = "hex"
    URI = "uri"
    PLAIN = "plain"


# Именованные аргументы утилиты подписи, порядок таблицы = порядок в командной строке
KEYED_ARGUMENTS: Dict[str, ArgumentKind] = {
    "td": ArgumentKind.PLAIN,
    "sha1": ArgumentKind.HEX,
    "fd": ArgumentKind.PLAIN,
    "d": ArgumentKind.PLAIN,
    "t": ArgumentKind.URI,
    "tr": ArgumentKind.URI,
}

FORBIDDEN_CHARACTERS = frozenset(" \\\"'")
PATH_SEPARATORS = ("/", "\\")

_url_adapter = TypeAdapter(AnyUrl)


def is_restricted_value(value: str) -> bool:
    return any(c in FORBIDDEN_CHARACTERS or ord(c) < 0x20 for c in value)


def validate_file_name(file_name: Optional[str]) -> str:
    """Защита от выхода за пределы рабочего каталога"""
    if not file_name:
        raise ValidationFailure("file name is missing")

    if any(separator in file_name for separator in PATH_SEPARATORS):
        raise ValidationFailure(f"invalid file name {file_name}", token=file_name)

    if file_name in (".", "..") or "\x00" in file_name:
        raise ValidationFailure(f"invalid file name {file_name}", token=file_name)

    return file_name


def parse_command(value: Optional[str]) -> Command:
    if not value:
        raise ValidationFailure("command is missing")

    try:
        return Command.parse(value)
    except ValueError:
        raise ValidationFailure(f"invalid command {value}", token=value)


class ArgumentValidator:
    """Проверка флагов и аргументов по декларативной таблице имя -> вид"""

    def __init__(self, allowed_options: Iterable[str]):
        self.rules: Dict[str, ArgumentKind] = {
            option: ArgumentKind.FLAG for option in allowed_options
        }
        self.rules.update(KEYED_ARGUMENTS)

    def validate(self, name: str, value: Optional[str] = None) -> str:
        kind = self.rules.get(name)

        if kind is None:
            raise ValidationFailure(f"invalid option {name}", token=name)

        if kind is ArgumentKind.FLAG:
            if value is not None:
                raise ValidationFailure(f"option {name} takes no value", token=name)
            return name

        if not value:
            raise ValidationFailure(f"missing value for argument {name}", token=name)

        if is_restricted_value(value):
            raise ValidationFailure(f"invalid argument {value}", token=value)

        if kind is ArgumentKind.HEX:
            try:
                bytes.fromhex(value)
            except ValueError:
                raise ValidationFailure(f"invalid argument {value}", token=value)

        elif kind is ArgumentKind.URI:
            try:
                url = _url_adapter.validate_python(value)
            except ValidationError:
                raise ValidationFailure(f"invalid argument {value}", token=value)

            if not url.host:
                raise ValidationFailure(f"invalid argument {value}", token=value)

        return value

    def validate_options(self, raw_values: Iterable[str]) -> Tuple[str, ...]:
        options = []
        for raw in raw_values:
            for token in raw.split(","):
                if self.rules.get(token) is not ArgumentKind.FLAG:
                    raise ValidationFailure(f"invalid option {token}", token=token)
                options.append(self.validate(token))

        return tuple(options)

    def validate_arguments(self, items: Iterable[Tuple[str, str]]) -> Tuple[Tuple[str, str], ...]:
        # Параметры запроса вне таблицы не попадают в командную строку
        items = list(items)
        arguments = []
        for name in KEYED_ARGUMENTS:
            for key, value in items:
                if key == name:
                    arguments.append((name, self.validate(name, value)))

        return tuple(arguments)

    def check_items(self, items: Iterable[Tuple[str, str]]) -> None:
        """Проверка параметров строки запроса до чтения тела"""
        items = list(items)
        command = next((value for key, value in items if key == "command"), None)
        if command is not None:
            parse_command(command)

        self.validate_options(value for key, value in items if key == "options")
        self.validate_arguments(items)

    def build_request(
            self,
            command: Optional[str],
            file_name: Optional[str],
            option_values: Iterable[str],
            argument_items: Iterable[Tuple[str, str]]
    ) -> SigningRequest:
        return SigningRequest(
            command=parse_command(command),
            file_name=validate_file_name(file_name),
            options=self.validate_options(option_values),
            arguments=self.validate_arguments(argument_items)
        )
