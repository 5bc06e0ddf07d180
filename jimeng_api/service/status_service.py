"""
任务状态查询服务

每次查询都重新请求即梦接口，不缓存任何任务状态。
"""
from typing import Any, Dict, Optional, Union

from jimeng_api.core.constants import (
    IMAGE_SCENE_LIST,
    VIDEO_STATUS_DONE_CODES,
    VIDEO_STATUS_FAILED,
    VIDEO_STATUS_PROCESSING,
)
from jimeng_api.core.exceptions import JimengAPIError, RecordNotFound, ValidationFailure
from jimeng_api.core.logger.logger import get_logger
from jimeng_api.models.generation import ImageResult, ImageTaskStatus, TaskKind, VideoTaskStatus
from jimeng_api.service.request_service import RequestService
from jimeng_api.utils.url_extractor import (
    HQ_VIDEO_EXTRACTORS,
    VIDEO_STATUS_EXTRACTORS,
    extract_all_image_urls,
    extract_image_urls,
    first_history_item_video_url,
    run_extractors,
    serialize_response,
)

logger = get_logger(__name__)

HISTORY_PATH = "/mweb/v1/get_history_by_ids"
LOCAL_ITEM_PATH = "/mweb/v1/get_local_item_list"

STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_UNKNOWN = "unknown"


def normalize_video_status(status_code: Optional[int], video_url: Optional[str]) -> str:
    """
    把即梦视频状态码归一为 processing/completed/failed/unknown

    只要拿到视频URL，一律视为 completed。
    """
    if video_url:
        return STATUS_COMPLETED
    if status_code == VIDEO_STATUS_PROCESSING:
        return STATUS_PROCESSING
    if status_code in VIDEO_STATUS_DONE_CODES:
        # 已结束但还没有可用地址
        return STATUS_PROCESSING
    if status_code == VIDEO_STATUS_FAILED:
        return STATUS_FAILED
    return STATUS_UNKNOWN


class StatusService:
    """图片/视频任务状态查询"""

    def __init__(self, request_service: Optional[RequestService] = None):
        self.request_service = request_service or RequestService()

    async def query_image_task_status(self, history_id: str, credential: str) -> ImageTaskStatus:
        """
        查询图片任务状态

        Args:
            history_id: 任务ID
            credential: 调用方凭证

        Returns:
            ImageTaskStatus: 任务状态与图片URL

        Raises:
            RecordNotFound: 任务不存在
        """
        logger.info(f"[查询图片任务] 查询任务状态: {history_id}")
        response = await self.request_service.request(
            "POST",
            HISTORY_PATH,
            credential,
            data={
                "history_ids": [history_id],
                "image_info": {
                    "width": 2048,
                    "height": 2048,
                    "format": "webp",
                    "image_scene_list": [dict(scene) for scene in IMAGE_SCENE_LIST],
                },
            },
        )

        record = response.get(history_id) if isinstance(response, dict) else None
        if not record:
            raise RecordNotFound(history_id)

        item_list = record.get("item_list") or []
        if not isinstance(item_list, list):
            item_list = []
        results = []
        images = []
        if item_list and isinstance(item_list[0], dict) and item_list[0].get("image"):
            image_items = [item for item in item_list if isinstance(item, dict)]
            results = [ImageResult(url=url) for url in extract_image_urls(image_items)]
            images = extract_all_image_urls(image_items)

        status = record.get("status")
        logger.info(f"[查询图片任务] 任务 {history_id} - 状态: {status}, 图片数: {len(item_list)}")
        return ImageTaskStatus(
            history_id=history_id,
            status=status,
            fail_code=record.get("fail_code"),
            item_count=len(item_list),
            results=results,
            images=images,
            raw_data=record,
        )

    async def query_video_task_status(
        self,
        history_id: str,
        credential: str,
        high_quality: bool = False,
    ) -> VideoTaskStatus:
        """
        查询视频任务状态

        即梦未返回记录时视为仍在处理中。

        Args:
            history_id: 任务ID
            credential: 调用方凭证
            high_quality: 完成后是否额外获取高质量下载地址

        Returns:
            VideoTaskStatus: 归一化后的任务状态
        """
        logger.info(f"[查询视频任务] 查询任务状态: {history_id}")
        response = await self.request_service.request(
            "POST",
            HISTORY_PATH,
            credential,
            data={"history_ids": [history_id]},
        )

        record = response.get(history_id) if isinstance(response, dict) else None
        if not record:
            return VideoTaskStatus(
                history_id=history_id,
                status=STATUS_PROCESSING,
                status_code=VIDEO_STATUS_PROCESSING,
                fail_code=0,
            )

        serialized = serialize_response(response)
        video_url = run_extractors(VIDEO_STATUS_EXTRACTORS, serialized) or first_history_item_video_url(record)
        status_code = record.get("status")
        status = normalize_video_status(status_code, video_url)

        hq_video_url = None
        if high_quality and status == STATUS_COMPLETED:
            item_id = self._first_item_id(record)
            if item_id:
                hq_video_url = await self.fetch_high_quality_video_url(item_id, credential)
            else:
                logger.warning(f"[查询视频任务] {history_id} 缺少 item id，无法获取高质量视频")

        logger.info(
            f"[查询视频任务] historyId={history_id}, status={status}, videoUrl={'已获取' if video_url else '无'}"
        )
        return VideoTaskStatus(
            history_id=history_id,
            status=status,
            status_code=status_code,
            fail_code=record.get("fail_code") or 0,
            video_url=video_url,
            hq_video_url=hq_video_url,
            finish_time=(record.get("task") or {}).get("finish_time") or 0,
            raw_data=record,
        )

    @staticmethod
    def _first_item_id(record: Dict[str, Any]) -> Optional[str]:
        items = record.get("item_list") or []
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            return None
        item_id = (items[0].get("common_attr") or {}).get("id")
        return str(item_id) if item_id else None

    async def fetch_high_quality_video_url(self, item_id: str, credential: str) -> Optional[str]:
        """
        获取高码率视频下载地址，失败只记录警告并返回None

        Args:
            item_id: 视频项ID
            credential: 调用方凭证

        Returns:
            Optional[str]: 高质量视频URL
        """
        logger.info(f"尝试获取高质量视频下载URL，item_id: {item_id}")
        try:
            result = await self.request_service.request(
                "POST",
                LOCAL_ITEM_PATH,
                credential,
                data={
                    "item_id_list": [item_id],
                    "pack_item_opt": {"scene": 1, "need_data_integrity": True},
                    "is_for_video_download": True,
                },
            )
            url = run_extractors(HQ_VIDEO_EXTRACTORS, result)
        except JimengAPIError as e:
            logger.warning(f"获取高质量视频下载URL失败: {e.message}")
            return None
        except (KeyError, IndexError, TypeError, AttributeError, ValueError) as e:
            logger.warning(f"解析高质量视频响应失败: {type(e).__name__}: {str(e)}")
            return None

        if url:
            logger.info(f"获取到高质量视频URL: {url}")
        else:
            logger.warning("未能从get_local_item_list响应中提取到视频URL")
        return url

    async def query_task_status(
        self,
        history_id: str,
        credential: str,
        task_type: Union[TaskKind, str] = TaskKind.IMAGE,
        high_quality: bool = False,
    ) -> Union[ImageTaskStatus, VideoTaskStatus]:
        """按任务类型分发查询"""
        try:
            kind = TaskKind(task_type)
        except ValueError:
            raise ValidationFailure(f"不支持的任务类型: {task_type}", parameter="task_type") from None
        if kind == TaskKind.VIDEO:
            return await self.query_video_task_status(history_id, credential, high_quality)
        return await self.query_image_task_status(history_id, credential)
