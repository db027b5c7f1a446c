# Внешние зависимости
import os
import sys
import logging
from logging.handlers import RotatingFileHandler


LOGGER_NAME = "sign_service"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(LOGGER_NAME)


def setup_logger(level: str = "INFO", log_dir: str = "logs", log_file: str = "web_log") -> logging.Logger:
    """Настройка общего логгера сервиса (консоль + файл с ротацией)"""
    logger.setLevel(level.upper())
    logger.propagate = False

    # Повторная настройка не должна дублировать вывод
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, f"{log_file}.log"),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
