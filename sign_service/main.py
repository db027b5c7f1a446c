# Внешние зависимости
from typing import Optional
from fastapi import FastAPI
# Внутренние модули
from sign_service.src.core import Config, get_config
from sign_service.src.routers import create_router
from sign_service.src.utils import ArgumentValidator, SigningInvoker, create_invoker


def create_app(config: Optional[Config] = None, invoker: Optional[SigningInvoker] = None) -> FastAPI:
    config = config or get_config()

    app = FastAPI(title="Signtool API")

    # Настройки только для чтения, общие для всех запросов
    app.state.config = config
    app.state.invoker = invoker or create_invoker(config)
    app.state.validator = ArgumentValidator(config.allowed_options)

    # Подключение маршрутов
    app.include_router(create_router(config.endpoint))

    config.logger.info(f"Signtool API ready: {config}")
    return app


def run() -> None:
    import uvicorn

    config = get_config()
    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    run()
