# Внешние зависимости
import os
import uuid
import shutil
import asyncio
import aiofiles
from dataclasses import dataclass
from contextlib import asynccontextmanager
from typing import AsyncIterator
# Внутренние модули
from sign_service.src.core.logger import logger


@dataclass(frozen=True)
class StagedFile:
    working_directory: str
    file_name: str
    full_path: str

    def redact(self, text: str) -> str:
        """Заменяет внутренний путь рабочего каталога на имя файла клиента"""
        text = text.replace(self.full_path, self.file_name)
        text = text.replace(self.working_directory + os.sep, "")
        return text.replace(self.working_directory, ".")


def _remove_directory(directory: str) -> None:
    try:
        shutil.rmtree(directory)
    except FileNotFoundError:
        pass
    except OSError as err:
        logger.error(f"Failed to remove staging directory {directory}: {err}")
        raise


@asynccontextmanager
async def staging_directory(root: str) -> AsyncIterator[str]:
    """Отдельный каталог на каждый запрос, удаляется при любом исходе"""
    os.makedirs(root, exist_ok=True)
    directory = os.path.abspath(os.path.join(root, str(uuid.uuid4())))
    os.mkdir(directory)

    try:
        yield directory

    finally:
        await asyncio.to_thread(_remove_directory, directory)


async def stage_upload(directory: str, file_name: str, chunks: AsyncIterator[bytes]) -> StagedFile:
    full_path = os.path.join(directory, file_name)

    async with aiofiles.open(full_path, "wb") as f:
        async for chunk in chunks:
            await f.write(chunk)

    return StagedFile(working_directory=directory, file_name=file_name, full_path=full_path)


async def read_staged(staged: StagedFile) -> bytes:
    async with aiofiles.open(staged.full_path, "rb") as f:
        return await f.read()
