from jimeng_api.core.logger.logger import setup_logger
from jimeng_api.core.config_manager import config_manager


def configure_logging() -> None:
    """
    按配置初始化全局日志
    """
    log_file = config_manager.get("log.file_path", "logs/app.log")
    log_level = config_manager.get("log.level", "INFO")

    def log_filter(record):
        # uvicorn 的 h11 协议日志过于冗长
        return not record["name"].startswith("uvicorn.protocols.http.h11_impl")

    setup_logger(
        log_file=log_file,
        level=log_level,
        rotation="10 MB",
        retention="1 week",
        filter=log_filter,
    )
