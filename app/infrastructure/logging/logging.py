import logging
import sys

from core.config import get_settings

# 第三方库日志较多，统一调高级别
_NOISY_LOGGERS = ("PIL", "multipart", "aiosmtplib", "urllib3", "alembic.runtime.migration")

_HANDLER_NAME = "memo-console"


def setup_logging() -> None:
    """初始化根日志记录器，输出到标准输出，重复调用不会重复添加处理器"""
    settings = get_settings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    handler = next(
        (h for h in root_logger.handlers if h.get_name() == _HANDLER_NAME), None
    )
    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        root_logger.addHandler(handler)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(settings.log_format, datefmt="%Y-%m-%d %H:%M:%S")
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    root_logger.info("日志已初始化，级别: %s", logging.getLevelName(level))
