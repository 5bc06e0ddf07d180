"""
任务服务
"""
import uuid
from typing import Optional, Sequence

from jimeng_api.core.constants import VALID_VIDEO_DURATIONS
from jimeng_api.core.exceptions import SubmissionFailure, ValidationFailure
from jimeng_api.core.logger.logger import get_logger
from jimeng_api.core.region import parse_region
from jimeng_api.models.generation import GenerateMode, GenerateRequest, TaskKind
from jimeng_api.models.task import ImageTaskOptions, VideoTaskOptions
from jimeng_api.service.model_service import ModelService
from jimeng_api.service.payload_builder import (
    build_blend_ability_list,
    build_core_param,
    build_draft_content,
    build_generate_request,
    build_metrics_ability_list,
    build_metrics_extra,
    build_postedit_param,
    build_prompt_placeholder_list,
    build_video_generate_request,
    quantize_video_duration,
    supports_video_resolution,
)
from jimeng_api.service.request_service import RequestService
from jimeng_api.service.upload_service import (
    COMPOSITION_UPLOAD_POLICY,
    VIDEO_UPLOAD_POLICY,
    ImageSource,
    UploadService,
)

logger = get_logger(__name__)

GENERATE_PATH = "/mweb/v1/aigc_draft/generate"


class TaskService:
    """任务服务，创建图片/视频生成任务并返回 history_id"""

    def __init__(
        self,
        request_service: Optional[RequestService] = None,
        upload_service: Optional[UploadService] = None,
        model_service: Optional[ModelService] = None,
    ):
        """
        初始化任务服务

        Args:
            request_service: 即梦请求服务
            upload_service: 图片上传服务
            model_service: 模型解析服务
        """
        self.request_service = request_service or RequestService()
        self.upload_service = upload_service or UploadService(self.request_service)
        self.model_service = model_service or ModelService()

    async def submit(self, request: GenerateRequest, credential: str) -> str:
        """
        提交生成请求，提取 history_id；不做任何重试

        Raises:
            SubmissionFailure: 响应中没有 history_record_id
        """
        result = await self.request_service.request(
            "POST",
            GENERATE_PATH,
            credential,
            params=request.params,
            data=request.data,
        )
        aigc_data = result.get("aigc_data") if isinstance(result, dict) else None
        history_id = aigc_data.get("history_record_id") if isinstance(aigc_data, dict) else None
        if not history_id:
            logger.error("提交成功但响应中没有 history_record_id")
            raise SubmissionFailure("记录ID不存在")
        return str(history_id)

    async def create_image_generation_task(
        self,
        model: Optional[str],
        prompt: str,
        options: Optional[ImageTaskOptions],
        credential: str,
    ) -> str:
        """
        创建文生图任务

        Args:
            model: 模型名称
            prompt: 提示词
            options: 任务选项
            credential: 调用方凭证

        Returns:
            str: history_id
        """
        options = options or ImageTaskOptions()
        region = parse_region(credential)
        selection = self.model_service.resolve_model(model, region, TaskKind.IMAGE)
        logger.info(
            f"[异步任务] 创建文生图任务 - 模型: {selection.user_model} 映射模型: {selection.internal_model} "
            f"分辨率: {options.resolution} 比例: {options.ratio}"
        )
        resolution = self.model_service.resolve_resolution(
            selection.user_model, region, options.resolution, options.ratio
        )

        submit_id = str(uuid.uuid4())
        core_param = build_core_param(
            user_model=selection.user_model,
            model=selection.internal_model,
            prompt=prompt,
            resolution=resolution,
            negative_prompt=options.negative_prompt,
            sample_strength=options.sample_strength,
            intelligent_ratio=options.intelligent_ratio,
            mode=GenerateMode.TEXT2IMG,
        )
        metrics_extra = build_metrics_extra(
            model=selection.internal_model,
            submit_id=submit_id,
            resolution_type=resolution.resolution_type,
        )
        draft_content = build_draft_content(component_id=str(uuid.uuid4()), core_param=core_param)
        request = build_generate_request(
            model=selection.internal_model,
            region=region,
            submit_id=submit_id,
            draft_content=draft_content,
            metrics_extra=metrics_extra,
        )

        history_id = await self.submit(request, credential)
        logger.info(f"[异步任务] 文生图任务已提交，history_id: {history_id}")
        return history_id

    async def create_image_composition_task(
        self,
        model: Optional[str],
        prompt: str,
        images: Sequence[ImageSource],
        options: Optional[ImageTaskOptions],
        credential: str,
    ) -> str:
        """
        创建图生图任务，任意一张图片上传失败都会中止任务

        Args:
            model: 模型名称
            prompt: 提示词
            images: 输入图片（URL、本地路径、data URL 或字节），1-10 张
            options: 任务选项
            credential: 调用方凭证

        Returns:
            str: history_id
        """
        options = options or ImageTaskOptions()
        region = parse_region(credential)
        selection = self.model_service.resolve_model(model, region, TaskKind.IMAGE)
        resolution = self.model_service.resolve_resolution(
            selection.user_model, region, options.resolution, options.ratio
        )
        self.upload_service.validate_count(images, COMPOSITION_UPLOAD_POLICY)
        logger.info(
            f"[异步任务] 创建图生图任务 - 模型: {selection.user_model} 图片数量: {len(images)} "
            f"分辨率: {resolution.width}x{resolution.height}"
        )

        assets = await self.upload_service.upload_sequence(images, credential, region, COMPOSITION_UPLOAD_POLICY)
        asset_ids = [asset.asset_id for asset in assets]
        logger.info(f"所有图片上传完成，开始创建图生图任务: {', '.join(asset_ids)}")

        submit_id = str(uuid.uuid4())
        core_param = build_core_param(
            user_model=selection.user_model,
            model=selection.internal_model,
            prompt=prompt,
            resolution=resolution,
            negative_prompt=options.negative_prompt,
            sample_strength=options.sample_strength,
            intelligent_ratio=options.intelligent_ratio,
            mode=GenerateMode.IMG2IMG,
            image_count=len(asset_ids),
        )
        metrics_extra = build_metrics_extra(
            model=selection.internal_model,
            submit_id=submit_id,
            resolution_type=resolution.resolution_type,
            ability_list=build_metrics_ability_list(len(asset_ids), options.sample_strength),
        )
        draft_content = build_draft_content(
            component_id=str(uuid.uuid4()),
            core_param=core_param,
            ability_list=build_blend_ability_list(asset_ids, options.sample_strength),
            prompt_placeholder_list=build_prompt_placeholder_list(len(asset_ids)),
            postedit_param=build_postedit_param(),
        )
        request = build_generate_request(
            model=selection.internal_model,
            region=region,
            submit_id=submit_id,
            draft_content=draft_content,
            metrics_extra=metrics_extra,
        )

        history_id = await self.submit(request, credential)
        logger.info(f"[异步任务] 图生图任务已提交，history_id: {history_id}")
        return history_id

    async def create_video_generation_task(
        self,
        model: Optional[str],
        prompt: str,
        options: Optional[VideoTaskOptions],
        credential: str,
    ) -> str:
        """
        创建视频生成任务

        上传的文件优先于 file_paths；首帧上传失败会中止任务，尾帧失败只记录警告。

        Args:
            model: 模型名称
            prompt: 提示词
            options: 任务选项
            credential: 调用方凭证

        Returns:
            str: history_id
        """
        options = options or VideoTaskOptions()
        if options.duration not in VALID_VIDEO_DURATIONS:
            raise ValidationFailure(
                f"不支持的视频时长: {options.duration}，可选值: {', '.join(map(str, sorted(VALID_VIDEO_DURATIONS)))}",
                parameter="duration",
            )

        region = parse_region(credential)
        logger.info(f"[异步任务] 创建视频生成任务 - 区域: {region.code}")
        selection = self.model_service.resolve_model(model, region, TaskKind.VIDEO)
        internal_model = selection.internal_model
        actual_duration, _ = quantize_video_duration(internal_model, options.duration)
        logger.info(
            f"使用模型: {selection.user_model} 映射模型: {internal_model} 比例: {options.ratio} "
            f"分辨率: {options.resolution if supports_video_resolution(internal_model) else '不支持'} "
            f"时长: {actual_duration}s"
        )

        sources: Sequence[ImageSource] = options.files if options.files else options.file_paths
        if options.files:
            logger.info(f"检测到 {len(options.files)} 个上传文件，优先处理")
        elif not options.file_paths:
            logger.info("未提供图片文件或URL，将进行纯文本视频生成")

        assets = []
        if sources:
            assets = await self.upload_service.upload_sequence(sources, credential, region, VIDEO_UPLOAD_POLICY)

        first_frame = assets[0].asset_id if len(assets) > 0 else None
        end_frame = assets[1].asset_id if len(assets) > 1 else None
        if first_frame:
            logger.info(f"设置首帧图片: {first_frame}")
        if end_frame:
            logger.info(f"设置尾帧图片: {end_frame}")

        request = build_video_generate_request(
            model=internal_model,
            prompt=prompt,
            region=region,
            ratio=options.ratio,
            resolution=options.resolution,
            duration=options.duration,
            first_frame_asset=first_frame,
            end_frame_asset=end_frame,
        )

        history_id = await self.submit(request, credential)
        logger.info(f"[异步任务] 视频生成任务已提交，history_id: {history_id}")
        return history_id
