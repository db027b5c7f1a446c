# Внешние зависимости
import hmac
from email.message import Message
from typing import AsyncIterator, List, Optional, Tuple
from fastapi import Depends, HTTPException, Request, Response, status
from starlette.datastructures import FormData, UploadFile
# Внутренние модули
from sign_service.src.core import Config
from sign_service.src.core.exceptions import AuthenticationFailure, ToolInvocationFailure, ValidationFailure
from sign_service.src.utils import (
    ArgumentValidator, SigningInvoker, encode_outcome, stage_upload, staging_directory
)
from sign_service.src.utils.encoding import OCTET_STREAM
from sign_service.src.utils.validation import validate_file_name


FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")
CHUNK_SIZE = 1024 * 1024


def get_app_config(request: Request) -> Config:
    return request.app.state.config


def get_signing_invoker(request: Request) -> SigningInvoker:
    return request.app.state.invoker


def get_argument_validator(request: Request) -> ArgumentValidator:
    return request.app.state.validator


class Upload:
    """Единственный файл запроса: поле формы или тело application/octet-stream"""

    def __init__(
            self,
            file_name: Optional[str],
            chunks: AsyncIterator[bytes],
            fields: Optional[List[Tuple[str, str]]] = None,
            form: Optional[FormData] = None
    ):
        self.file_name = file_name
        self.chunks = chunks
        self.fields = fields or []
        self.form = form

    async def close(self) -> None:
        if self.form is not None:
            await self.form.close()


def authorize(request: Request, config: Config) -> None:
    presented = request.headers.get("Authorization")
    if presented is None:
        raise AuthenticationFailure("missing credentials")

    # Сравниваем со всеми значениями, без раннего выхода
    matches = [
        hmac.compare_digest(presented.encode(), accepted.encode())
        for accepted in config.accepted_authorizations
    ]
    if not any(matches):
        raise AuthenticationFailure("invalid credentials")


def parse_content_disposition(header: Optional[str]) -> Optional[str]:
    if not header:
        return None

    message = Message()
    message["content-disposition"] = header
    return message.get_filename()


async def _read_upload(upload: UploadFile) -> AsyncIterator[bytes]:
    while True:
        chunk = await upload.read(CHUNK_SIZE)
        if not chunk:
            break
        yield chunk


def part_file_name(upload: UploadFile) -> Optional[str]:
    # python-multipart отбрасывает префиксы C:\ и \\server\, проверяем исходное имя части
    raw = parse_content_disposition(upload.headers.get("content-disposition"))
    if raw:
        validate_file_name(raw)
    return upload.filename


async def receive_upload(request: Request) -> Upload:
    content_type = request.headers.get("content-type", "")
    media_type = content_type.split(";")[0].strip().lower()

    if media_type in FORM_CONTENT_TYPES:
        form = await request.form()
        files = [value for _, value in form.multi_items() if isinstance(value, UploadFile)]
        fields = [(key, value) for key, value in form.multi_items() if isinstance(value, str)]

        try:
            if len(files) != 1:
                raise ValidationFailure(f"expected exactly one file, got {len(files)}")
            file_name = part_file_name(files[0])

        except ValidationFailure:
            await form.close()
            raise

        return Upload(file_name, _read_upload(files[0]), fields, form)

    if media_type != OCTET_STREAM:
        raise ValidationFailure(f"{content_type} should be {OCTET_STREAM}", token=content_type)

    file_name = parse_content_disposition(request.headers.get("content-disposition"))
    return Upload(file_name, request.stream())


def _first(items: List[Tuple[str, str]], name: str) -> Optional[str]:
    return next((value for key, value in items if key == name), None)


async def handle_signtool_request(
        request: Request,
        config: Config = Depends(get_app_config),
        invoker: SigningInvoker = Depends(get_signing_invoker),
        validator: ArgumentValidator = Depends(get_argument_validator)
) -> Response:
    # 1. Аутентификация, до любой работы с файлами
    try:
        authorize(request, config)

    except AuthenticationFailure:
        config.logger.warning(f"Unauthorized request from {request.client.host if request.client else 'unknown'}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": config.challenge}
        )

    upload = None
    try:
        # 2. Проверка запроса до записи файла на диск
        query_items = list(request.query_params.multi_items())
        validator.check_items(query_items)
        upload = await receive_upload(request)
        items = query_items + upload.fields
        signing_request = validator.build_request(
            command=_first(items, "command"),
            file_name=upload.file_name,
            option_values=[value for key, value in items if key == "options"],
            argument_items=items
        )

        # 3. Рабочий каталог запроса, удаляется при любом исходе
        async with staging_directory(config.staging_root) as directory:
            staged = await stage_upload(directory, signing_request.file_name, upload.chunks)
            try:
                outcome = await invoker.invoke(signing_request, staged)
            except ToolInvocationFailure as err:
                raise ToolInvocationFailure(staged.redact(str(err))) from err
            response = encode_outcome(outcome, signing_request.file_name)

        config.logger.info(
            f"{signing_request.command.value} {signing_request.file_name}: {type(outcome).__name__}"
        )
        return response

    except ValidationFailure as err:
        config.logger.warning(f"Rejected request: {err}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err))

    except ToolInvocationFailure as err:
        config.logger.error(f"Tool invocation failed: {err}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(err))

    except HTTPException:
        raise

    except Exception as e:
        config.logger.error(f"Error processing signing request: {str(e)}")
        # Текст исключения может содержать пути рабочего каталога, клиенту не отдаем
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error processing signing request"
        )

    finally:
        if upload is not None:
            await upload.close()
