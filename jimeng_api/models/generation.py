"""
生成任务领域模型
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TaskKind(str, Enum):
    """任务类型"""
    IMAGE = "image"
    VIDEO = "video"


class GenerateMode(str, Enum):
    """生成模式"""
    TEXT2IMG = "text2img"
    IMG2IMG = "img2img"


class Outcome(str, Enum):
    """解析结果：完全按请求 / 被收敛到可用档位 / 使用默认值"""
    RESOLVED = "resolved"
    CLAMPED = "clamped"
    DEFAULTED = "defaulted"


class RegionInfo(BaseModel):
    """凭证解析出的区域信息"""
    model_config = ConfigDict(frozen=True)

    code: str = Field(..., description="区域代码 cn/us/hk/jp/sg")
    is_international: bool = Field(..., description="是否国际站")
    assistant_id: int = Field(..., description="助手ID")
    session_token: str = Field(..., description="去除区域前缀后的会话令牌")

    @property
    def is_cn(self) -> bool:
        return not self.is_international


class ModelSelection(BaseModel):
    """模型解析结果"""
    model_config = ConfigDict(frozen=True)

    user_model: str = Field(..., description="对外模型名")
    internal_model: str = Field(..., description="即梦内部模型标识")
    outcome: Outcome = Field(Outcome.RESOLVED, description="解析结果")


class ResolutionSpec(BaseModel):
    """分辨率解析结果"""
    model_config = ConfigDict(frozen=True)

    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    resolution_type: str = Field(..., description="分辨率档位 1k/2k/4k")
    image_ratio: int = Field(..., description="即梦内部比例编号")
    ratio: str = Field(..., description="宽高比")
    outcome: Outcome = Field(Outcome.RESOLVED)
    requested: Optional[str] = Field(None, description="调用方请求的档位")


class CoreParam(BaseModel):
    """任务意图（序列化为线上结构之前）"""
    model_config = ConfigDict(frozen=True)

    user_model: str
    model: str
    prompt: str
    negative_prompt: str = ""
    seed: int
    sample_strength: float = 0.5
    resolution: ResolutionSpec
    intelligent_ratio: bool = False
    mode: GenerateMode = GenerateMode.TEXT2IMG
    image_count: int = 0


class GenerateRequest(BaseModel):
    """最终发送给 aigc_draft/generate 的请求"""
    params: Dict[str, Any] = Field(default_factory=dict)
    data: Dict[str, Any] = Field(default_factory=dict)


class UploadedAsset(BaseModel):
    """单张图片上传结果"""
    index: int = Field(..., description="调用方传入时的序号")
    source_kind: str = Field(..., description="来源类型")
    asset_id: str = Field(..., description="即梦图片URI")


class ImageUrlInfo(BaseModel):
    """单张图片的多种URL"""
    png: Optional[str] = Field(None, description="原始PNG，约2小时有效")
    webp: Optional[str] = Field(None, description="WebP 2048，约2小时有效")
    webp_long: Optional[str] = Field(None, description="最大尺寸长效WebP，约29天有效")
    webp_sizes: Dict[str, str] = Field(default_factory=dict, description="所有尺寸的长效WebP")


class Credits(BaseModel):
    """积分快照"""
    total: float = Field(..., ge=0)
    gift: float = Field(..., ge=0)
    purchase: float = Field(..., ge=0)
    vip: float = Field(..., ge=0)


class ImageResult(BaseModel):
    url: str


class ImageTaskStatus(BaseModel):
    """图片任务状态"""
    history_id: str
    task_type: str = TaskKind.IMAGE.value
    status: Optional[int] = None
    fail_code: Optional[Any] = None
    item_count: int = 0
    results: List[ImageResult] = Field(default_factory=list)
    images: List[ImageUrlInfo] = Field(default_factory=list)
    raw_data: Optional[Dict[str, Any]] = None


class VideoTaskStatus(BaseModel):
    """视频任务状态"""
    history_id: str
    task_type: str = TaskKind.VIDEO.value
    status: str
    status_code: Optional[int] = None
    fail_code: Any = 0
    video_url: Optional[str] = None
    hq_video_url: Optional[str] = None
    finish_time: int = 0
    raw_data: Optional[Dict[str, Any]] = None
