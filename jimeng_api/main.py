"""
即梦异步生成API服务主程序
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jimeng_api.router.async_tasks import router as async_tasks_router
from jimeng_api.core.exceptions import JimengAPIError
from jimeng_api.core.logger.logger import get_logger
from jimeng_api.core.config_manager import config_manager

logger = get_logger(__name__)

API_PREFIX = "/v1/async"

# 创建FastAPI实例
app = FastAPI(
    title="即梦 API",
    description="即梦/Dreamina 异步图片与视频生成服务",
    version="1.0.0"
)

# 添加CORS中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册API路由
app.include_router(async_tasks_router)


@app.exception_handler(JimengAPIError)
async def jimeng_error_handler(request: Request, exc: JimengAPIError) -> JSONResponse:
    """把服务异常转换为统一的错误响应"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} 失败: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} 请求无效: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"type": type(exc).__name__, "message": exc.message}},
    )


@app.get("/")
async def root():
    return {
        "service": "jimeng-api",
        "version": app.version,
        "endpoints": [route.path for route in async_tasks_router.routes],
    }


@app.get("/ping")
async def ping():
    return "pong"


def get_start_info() -> str:
    """
    获取启动信息字符串

    Returns:
        str: 启动信息
    """
    listen_address = config_manager.get("api.host", "0.0.0.0")
    service_port = config_manager.get("api.port", 5100)
    default_image = config_manager.get("models.default_image")
    default_video = config_manager.get("models.default_video")

    return f"""
-------------------------------------------------------------------
监听地址：{listen_address}
服务端口：{service_port}
API前缀：{API_PREFIX}
默认图片模型：{default_image}
默认视频模型：{default_video}
-------------------------------------------------------------------
    """
