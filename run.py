import uvicorn
from jimeng_api.main import get_start_info
from jimeng_api.core.logger.logger import get_logger
from jimeng_api.core.logger.logger_config import configure_logging
from jimeng_api.core.config_manager import config_manager

logger = get_logger(__name__)

if __name__ == "__main__":
    configure_logging()

    # 从配置管理器获取配置
    listen_address = config_manager.get('api.host')
    service_port = config_manager.get('api.port')
    reload_enabled = config_manager.get('api.reload', False)

    # 打印启动信息
    logger.info(get_start_info())

    # 启动服务器
    uvicorn.run(
        "jimeng_api.main:app",
        host=listen_address,
        port=service_port,
        reload=reload_enabled,
        log_config=None,
    )
