# Внешние зависимости
from urllib.parse import quote
from fastapi import Response, status
from fastapi.responses import JSONResponse, PlainTextResponse
# Внутренние модули
from sign_service.src.schemas import SigningOutcome, SignSucceeded, ToolFailed, VerifyRecord, VerifyResult


OCTET_STREAM = "application/octet-stream"
EXIT_CODE_HEADER = "X-Signtool-Exit-Code"


def content_disposition(file_name: str) -> str:
    quoted = quote(file_name)
    if quoted != file_name:
        return f"attachment; filename*=utf-8''{quoted}"

    return f'attachment; filename="{file_name}"'


def encode_outcome(outcome: SigningOutcome, file_name: str) -> Response:
    """Результат подписи/проверки -> HTTP ответ"""
    if isinstance(outcome, SignSucceeded):
        # Имя вложения совпадает с именем загруженного файла
        return Response(
            content=outcome.signed_file_bytes,
            media_type=OCTET_STREAM,
            headers={"Content-Disposition": content_disposition(file_name)}
        )

    if isinstance(outcome, VerifyResult):
        record = VerifyRecord(
            signer_certificate=outcome.certificate,
            status=outcome.status,
            status_message=outcome.status_message,
            path=outcome.path
        )
        return JSONResponse(content=record.to_wire())

    if isinstance(outcome, ToolFailed):
        return PlainTextResponse(
            content=outcome.diagnostics,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            headers={EXIT_CODE_HEADER: str(outcome.exit_code)}
        )

    raise TypeError(f"unexpected signing outcome {outcome!r}")
