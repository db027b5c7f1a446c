# Внешние зависимости
import asyncio
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence
# Внутренние модули
from sign_service.src.core.exceptions import ToolInvocationFailure
from sign_service.src.core.logger import logger


@dataclass(frozen=True)
class ProcessResult:
    exit_code: int
    stdout: str
    stderr: str


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


async def run_process(argv: Sequence[str], command_line: Optional[str] = None) -> ProcessResult:
    """Запуск внешней программы с перехватом stdout/stderr, без повторов"""
    logger.info(command_line or subprocess.list2cmdline(argv))

    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0)
        )

    except OSError as err:
        logger.error(f"Failed to start {argv[0]}: {err}")
        raise ToolInvocationFailure(f"failed to start {argv[0]}: {err}") from err

    stdout, stderr = await proc.communicate()
    output, error = _decode(stdout), _decode(stderr)

    if output:
        logger.info(output)

    if error:
        logger.info(error)

    return ProcessResult(exit_code=proc.returncode, stdout=output, stderr=error)
