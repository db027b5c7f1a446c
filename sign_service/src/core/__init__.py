# Внутренние модули
from sign_service.src.core.config import Config, get_config
from sign_service.src.core.logger import logger, setup_logger
