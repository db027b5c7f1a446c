# Внешние зависимости
import re
from typing import List, Optional
# Внутренние модули
from sign_service.src.schemas import (
    Command, SigningRequest, SigningOutcome, SignSucceeded, ToolFailed, VerifyResult, VerifyStatus
)
from sign_service.src.utils.process import run_process
from sign_service.src.utils.staging import StagedFile, read_staged


# Цепочка сертификатов подписи в выводе "verify /v", последний SHA1 в блоке - сам подписант
SIGNING_CHAIN_PATTERN = re.compile(
    r"Signing Certificate Chain:(?P<chain>.*?)(?:The signature is timestamped|Timestamp Verified by|File is not timestamped|$)",
    re.DOTALL
)
SHA1_HASH_PATTERN = re.compile(r"SHA1 hash:\s*(?P<hash>[0-9A-Fa-f]{40})")


def build_arguments(request: SigningRequest, staged: StagedFile) -> List[str]:
    arguments = [request.command.value]
    arguments.extend(f"/{option}" for option in request.options)

    for name, value in request.arguments:
        arguments.extend((f"/{name}", value))

    arguments.append(staged.full_path)
    return arguments


def format_command_line(executable: str, arguments: List[str]) -> str:
    """Строка для аудита: все аргументы как есть, путь к файлу в кавычках"""
    return " ".join([executable, *arguments[:-1], f'"{arguments[-1]}"'])


def find_signer_thumbprint(output: str) -> Optional[str]:
    chain = SIGNING_CHAIN_PATTERN.search(output)
    if chain is None:
        return None

    hashes = SHA1_HASH_PATTERN.findall(chain.group("chain"))
    return hashes[-1].upper() if hashes else None


class SignToolInvoker:
    """Прямой вызов утилиты подписи для каждого запроса"""

    def __init__(self, signtool_path: str):
        self.signtool_path = signtool_path

    async def invoke(self, request: SigningRequest, staged: StagedFile) -> SigningOutcome:
        arguments = build_arguments(request, staged)
        result = await run_process(
            [self.signtool_path, *arguments],
            command_line=format_command_line(self.signtool_path, arguments)
        )

        if result.exit_code != 0:
            return ToolFailed(
                exit_code=result.exit_code,
                stdout=staged.redact(result.stdout),
                stderr=staged.redact(result.stderr)
            )

        if request.command is Command.SIGN:
            return SignSucceeded(signed_file_bytes=await read_staged(staged))

        return VerifyResult(
            certificate=find_signer_thumbprint(result.stdout) or "",
            status=VerifyStatus.VALID.value,
            status_message=staged.redact(result.stdout).strip(),
            path=staged.file_name
        )
