# Внутренние модули
from sign_service.src.client.config import ClientConfig
from sign_service.src.client.renderer import handle_response, render_table
from sign_service.src.client.request_builder import build_request
