"""
异步任务接口数据模型
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from jimeng_api.core.constants import MAX_VIDEO_IMAGES

UNSUPPORTED_SIZE_PARAMS = ("size", "width", "height")


class ImageTaskOptions(BaseModel):
    """图片任务选项"""
    ratio: str = Field("1:1", description="宽高比")
    resolution: str = Field("2k", description="分辨率档位")
    sample_strength: float = Field(0.5, description="精细度")
    negative_prompt: str = Field("", description="反向提示词")
    intelligent_ratio: bool = Field(False, description="是否智能比例")


class VideoTaskOptions(BaseModel):
    """视频任务选项"""
    ratio: str = Field("1:1", description="宽高比")
    resolution: str = Field("720p", description="分辨率")
    duration: int = Field(5, description="时长（秒）")
    file_paths: List[str] = Field(default_factory=list, description="首尾帧图片URL或本地缓存路径")
    files: List[bytes] = Field(default_factory=list, description="上传的首尾帧图片内容")


class _ImageRequestBase(BaseModel):
    model: Optional[str] = Field(None, description="模型名称")
    prompt: str = Field(..., description="提示词")
    negative_prompt: Optional[str] = Field(None, description="反向提示词")
    ratio: Optional[str] = Field(None, description="宽高比")
    resolution: Optional[str] = Field(None, description="分辨率档位")
    intelligent_ratio: Optional[bool] = Field(None, description="是否智能比例")
    sample_strength: Optional[float] = Field(None, description="精细度")

    @model_validator(mode="before")
    @classmethod
    def reject_size_params(cls, data: Any) -> Any:
        if isinstance(data, dict):
            found = [p for p in UNSUPPORTED_SIZE_PARAMS if p in data]
            if found:
                raise ValueError(
                    f"不支持的参数: {', '.join(found)}。请使用 ratio 和 resolution 参数控制图像尺寸。"
                )
        return data

    def to_options(self) -> ImageTaskOptions:
        values = {k: v for k, v in self.model_dump(exclude={"model", "prompt"}).items() if v is not None}
        return ImageTaskOptions(**values)


class ImageGenerationRequest(_ImageRequestBase):
    """文生图请求"""


class ImageCompositionRequest(_ImageRequestBase):
    """图生图请求（JSON）"""
    images: List[Union[str, Dict[str, Any]]] = Field(..., description="输入图片URL或包含url字段的对象")

    @field_validator("images")
    @classmethod
    def normalize_images(cls, images: List[Union[str, Dict[str, Any]]]) -> List[Union[str, Dict[str, Any]]]:
        for index, image in enumerate(images):
            if isinstance(image, dict) and not image.get("url"):
                raise ValueError(f"图片 {index + 1} 缺少url字段")
        return images

    def image_urls(self) -> List[str]:
        return [image if isinstance(image, str) else image["url"] for image in self.images]


class VideoGenerationRequest(BaseModel):
    """视频生成请求（JSON）"""
    model: Optional[str] = Field(None, description="模型名称")
    prompt: str = Field(..., description="提示词")
    ratio: str = Field("1:1", description="宽高比")
    resolution: str = Field("720p", description="分辨率")
    duration: int = Field(5, description="时长（秒）")
    file_paths: List[str] = Field(default_factory=list, max_length=MAX_VIDEO_IMAGES, description="图片路径")
    filePaths: List[str] = Field(default_factory=list, max_length=MAX_VIDEO_IMAGES, description="图片路径（驼峰写法）")

    def paths(self) -> List[str]:
        return self.filePaths if self.filePaths else self.file_paths


class TaskQueryRequest(BaseModel):
    """任务查询请求"""
    history_id: str = Field(..., description="任务ID")
    task_type: str = Field("image", description="任务类型 image/video")
    hq: bool = Field(False, description="视频任务是否获取高质量下载地址")


class TaskSubmitResponse(BaseModel):
    """任务提交响应"""
    created: int
    history_id: str
    status: str = "submitted"
    message: str = "任务已提交，请使用 history_id 查询任务状态"
    input_images: Optional[int] = None


class CreditsResponse(BaseModel):
    """积分响应"""
    credits: Dict[str, float]
    timestamp: int
