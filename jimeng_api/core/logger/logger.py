import sys
import logging
from pathlib import Path
from typing import Union, Any, Iterable, Protocol, runtime_checkable
from loguru import logger as loguru_logger

LOG_FORMAT = (
    "<level>[{level}]</level> - "
    "<blue>{time:YYYY-MM-DD HH:mm:ss}</blue> - "
    "<magenta>{extra[name]}</magenta> - "
    "<level>{message}</level>"
)

# 需要统一接管到 loguru 的标准 logging 记录器
INTERCEPTED_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "fastapi", "httpx")

loguru_logger.configure(extra={"name": "jimeng_api"})


@runtime_checkable
class LoggerProtocol(Protocol):
    """日志记录器协议"""
    def debug(self, __message: str, *args: Any, **kwargs: Any) -> None: ...
    def info(self, __message: str, *args: Any, **kwargs: Any) -> None: ...
    def warning(self, __message: str, *args: Any, **kwargs: Any) -> None: ...
    def error(self, __message: str, *args: Any, **kwargs: Any) -> None: ...
    def exception(self, __message: str, *args: Any, **kwargs: Any) -> None: ...


class InterceptHandler(logging.Handler):
    """
    将标准 logging 的日志重定向到 loguru
    """
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: Union[str, int] = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        loguru_logger.bind(name=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logger(
    log_file: str = "logs/app.log",
    level: Union[str, int] = "INFO",
    rotation: str = "10 MB",
    retention: str = "1 week",
    format: str = LOG_FORMAT,
    intercepted: Iterable[str] = INTERCEPTED_LOGGERS,
    filter: Any = None,
) -> None:
    """
    全局初始化 loguru，并把标准 logging 拦截到 loguru 中。
    只应在进程入口调用一次。
    """
    loguru_logger.remove()

    loguru_logger.add(
        sys.stdout,
        format=format,
        level=level,
        colorize=True,
        filter=filter
    )

    if log_file:
        file_path = Path(log_file)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        loguru_logger.add(
            str(file_path),
            rotation=rotation,
            retention=retention,
            format=format,
            level=level,
            encoding="utf-8",
            filter=filter
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in intercepted:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False


def get_logger(name: str) -> LoggerProtocol:
    """
    获取绑定模块名称的 loguru 日志记录器
    """
    return loguru_logger.bind(name=name)
