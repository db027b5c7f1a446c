# Внешние зависимости
import asyncio
from pathlib import Path
from typing import Dict, List, Optional
import httpx
import typer
# Внутренние модули
from sign_service.src.client import ClientConfig, build_request, handle_response
from sign_service.src.client.renderer import EXIT_TRANSPORT, EXIT_USAGE
from sign_service.src.client.request_builder import CLIENT_ARGUMENTS, CLIENT_FLAGS
from sign_service.src.core.exceptions import TransportMismatch, ValidationFailure


app = typer.Typer(
    name="signtool",
    help="Remote signtool: signtool [sign|verify] [/flag ...] [/name value ...] file ...",
    add_completion=False
)


def create_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=httpx.Timeout(300.0))


def switch_name(token: str) -> Optional[str]:
    """/sha1, -SHA1 -> sha1"""
    if len(token) > 1 and token[0] in "/-":
        return token[1:].lower()
    return None


async def process_file(
        config: ClientConfig,
        command: str,
        options: List[str],
        arguments: Dict[str, str],
        file_path: Path
) -> int:
    request = build_request(config, command, options, arguments, file_path)
    typer.echo(f"{request.url} {file_path}")

    async with create_client() as client:
        response = await client.send(request)

    return handle_response(response, file_path)


async def run_tokens(config: ClientConfig, tokens: List[str]) -> int:
    """Разбор аргументов в стиле signtool, файлы обрабатываются по порядку"""
    rc = EXIT_USAGE
    command = ""
    options: List[str] = []
    arguments: Dict[str, str] = {}

    i = 0
    while i < len(tokens):
        token = tokens[i]
        i += 1
        name = switch_name(token)

        if name in CLIENT_FLAGS:
            options.append(name)

        elif name in CLIENT_ARGUMENTS:
            if i >= len(tokens):
                raise ValidationFailure(f"missing value for {token}", token=token)
            arguments[name] = tokens[i]
            i += 1

        elif token.lower() in ("sign", "verify"):
            command = token.lower()

        else:
            rc = await process_file(config, command, options, arguments, Path(token))
            if rc != 0:
                break

    return rc


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def main(ctx: typer.Context) -> None:
    try:
        config = ClientConfig.load()
        rc = asyncio.run(run_tokens(config, list(ctx.args)))

    except ValidationFailure as err:
        typer.echo(str(err), err=True)
        raise typer.Exit(code=EXIT_USAGE)

    except (TransportMismatch, httpx.HTTPError) as err:
        typer.echo(str(err), err=True)
        raise typer.Exit(code=EXIT_TRANSPORT)

    raise typer.Exit(code=rc)


if __name__ == "__main__":
    app()
