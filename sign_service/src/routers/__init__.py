# Внешние зависимости
from fastapi import APIRouter
# Внутренние модули
from sign_service.src.routers.api_router import handle_signtool_request


def create_router(endpoint: str) -> APIRouter:
    router = APIRouter(tags=["Signtool"])
    router.add_api_route(
        path=endpoint,
        endpoint=handle_signtool_request,
        methods=["POST"],
        summary="Подпись или проверка подписи файла"
    )
    return router
