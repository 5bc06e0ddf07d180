import time
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar, Union

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ValidationError
from starlette.datastructures import UploadFile

from jimeng_api.core.exceptions import ValidationFailure
from jimeng_api.core.security import get_vendor_token
from jimeng_api.models.generation import ImageTaskStatus, VideoTaskStatus
from jimeng_api.models.task import (
    CreditsResponse,
    ImageCompositionRequest,
    ImageGenerationRequest,
    TaskQueryRequest,
    TaskSubmitResponse,
    VideoGenerationRequest,
    VideoTaskOptions,
)
from jimeng_api.service import credit_service, status_service, task_service

router = APIRouter(prefix="/v1/async", tags=["async-tasks"])

ModelT = TypeVar("ModelT", bound=BaseModel)
FormSource = Union[str, bytes]


def _parse(model_cls: Type[ModelT], data: Any) -> ModelT:
    """校验请求体，把 pydantic 的错误转换为 ValidationFailure"""
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        details = []
        for error in e.errors():
            location = ".".join(str(part) for part in error.get("loc", ()))
            message = str(error.get("msg", "")).replace("Value error, ", "")
            details.append(f"{location}: {message}" if location else message)
        raise ValidationFailure("; ".join(details)) from None


def _is_multipart(request: Request) -> bool:
    return request.headers.get("content-type", "").startswith("multipart/form-data")


async def _read_json(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise ValidationFailure("请求体不是合法的JSON") from None
    if not isinstance(body, dict):
        raise ValidationFailure("请求体必须是JSON对象")
    return body


async def _read_form(request: Request, file_field: Optional[str] = None) -> Tuple[Dict[str, Any], List[FormSource]]:
    """
    读取 multipart 表单

    Args:
        request: 请求
        file_field: 只收集该字段的图片，None 表示收集所有上传文件

    Returns:
        Tuple[Dict[str, Any], List[FormSource]]: (普通字段, 按表单顺序排列的图片)
    """
    form = await request.form()
    fields: Dict[str, Any] = {}
    sources: List[FormSource] = []
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if file_field is None or key == file_field:
                sources.append(await value.read())
            continue
        if key == file_field:
            sources.append(value)
        elif key in fields:
            existing = fields[key]
            fields[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            fields[key] = value
    return fields, sources


def _submitted(history_id: str, input_images: Optional[int] = None) -> TaskSubmitResponse:
    return TaskSubmitResponse(created=int(time.time()), history_id=history_id, input_images=input_images)


@router.post("/images/generations", response_model=TaskSubmitResponse, response_model_exclude_none=True)
async def create_image_generation(request: Request, token: str = Depends(get_vendor_token)):
    """
    异步文生图，立即返回 history_id
    """
    body = _parse(ImageGenerationRequest, await _read_json(request))
    history_id = await task_service.create_image_generation_task(
        body.model, body.prompt, body.to_options(), token
    )
    return _submitted(history_id)


@router.post("/images/compositions", response_model=TaskSubmitResponse, response_model_exclude_none=True)
async def create_image_composition(request: Request, token: str = Depends(get_vendor_token)):
    """
    异步图生图，支持JSON（images 为URL列表）或 multipart（images 为上传文件）
    """
    if _is_multipart(request):
        fields, images = await _read_form(request, file_field="images")
        body = _parse(ImageGenerationRequest, fields)
    else:
        body = _parse(ImageCompositionRequest, await _read_json(request))
        images = body.image_urls()

    history_id = await task_service.create_image_composition_task(
        body.model, body.prompt, images, body.to_options(), token
    )
    return _submitted(history_id, input_images=len(images))


@router.post("/videos/generations", response_model=TaskSubmitResponse, response_model_exclude_none=True)
async def create_video_generation(request: Request, token: str = Depends(get_vendor_token)):
    """
    异步视频生成，上传的图片文件优先于 file_paths
    """
    files: List[bytes] = []
    if _is_multipart(request):
        fields, sources = await _read_form(request)
        files = [source for source in sources if isinstance(source, bytes)]
        for key in ("file_paths", "filePaths"):
            if isinstance(fields.get(key), str):
                fields[key] = [fields[key]]
        body = _parse(VideoGenerationRequest, fields)
    else:
        body = _parse(VideoGenerationRequest, await _read_json(request))

    options = VideoTaskOptions(
        ratio=body.ratio,
        resolution=body.resolution,
        duration=body.duration,
        file_paths=body.paths(),
        files=files,
    )
    history_id = await task_service.create_video_generation_task(body.model, body.prompt, options, token)
    return _submitted(history_id)


@router.post("/tasks/query")
async def query_task(request: Request, token: str = Depends(get_vendor_token)):
    """
    按 history_id 查询任务状态
    """
    body = _parse(TaskQueryRequest, await _read_json(request))
    return await status_service.query_task_status(body.history_id, token, body.task_type, body.hq)


@router.get("/tasks/{history_id}")
async def get_task(
    history_id: str,
    task_type: str = Query("image"),
    hq: bool = Query(False),
    token: str = Depends(get_vendor_token),
):
    """
    查询任务状态，task_type 为 image 或 video
    """
    return await status_service.query_task_status(history_id, token, task_type, hq)


@router.get("/images/tasks/{history_id}", response_model=ImageTaskStatus)
async def get_image_task(history_id: str, token: str = Depends(get_vendor_token)):
    return await status_service.query_image_task_status(history_id, token)


@router.get("/videos/tasks/{history_id}", response_model=VideoTaskStatus)
async def get_video_task(
    history_id: str,
    hq: bool = Query(False),
    token: str = Depends(get_vendor_token),
):
    """
    查询视频任务状态，hq=true 时额外返回高质量下载地址
    """
    return await status_service.query_video_task_status(history_id, token, high_quality=hq)


@router.get("/credits", response_model=CreditsResponse)
async def get_credits(token: str = Depends(get_vendor_token)):
    """
    查询账户积分
    """
    credits = await credit_service.query_credits(token)
    return CreditsResponse(credits=credits.model_dump(), timestamp=int(time.time()))
