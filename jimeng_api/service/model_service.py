"""
模型服务
"""
import re
from typing import Optional, Tuple, Union

from jimeng_api.core.config_manager import config_manager
from jimeng_api.core.constants import (
    DEFAULT_MODELS,
    IMAGE_RATIO_CODES,
    MODEL_RESOLUTION_TIERS,
    MODEL_RESOLUTION_TIERS_INTERNATIONAL,
    MODEL_TABLES,
    RESOLUTION_DIMENSIONS,
    RESOLUTION_TIERS,
)
from jimeng_api.core.exceptions import ValidationFailure
from jimeng_api.core.logger.logger import get_logger
from jimeng_api.models.generation import (
    ModelSelection,
    Outcome,
    RegionInfo,
    ResolutionSpec,
    TaskKind,
)

logger = get_logger(__name__)

# 形如 "2k" 的分辨率档位
TIER_PATTERN = re.compile(r"^(\d+)k$")

DEFAULT_RESOLUTION = "2k"


class ModelService:
    """模型与分辨率解析"""

    def _default_alias(self, kind: TaskKind, table) -> str:
        configured = config_manager.get(f"models.default_{kind.value}")
        if configured in table:
            return configured
        return DEFAULT_MODELS[kind.value]

    def resolve_model(
        self,
        alias: Optional[str],
        region: RegionInfo,
        task_kind: Union[TaskKind, str] = TaskKind.IMAGE,
    ) -> ModelSelection:
        """
        将对外模型名解析为即梦内部模型标识

        Args:
            alias: 调用方传入的模型名，可为空
            region: 凭证区域信息
            task_kind: 任务类型 image/video

        Returns:
            ModelSelection: 解析结果，未知模型回退到默认模型，不会抛出异常
        """
        kind = TaskKind(task_kind)
        table = MODEL_TABLES[(kind.value, region.is_international)]

        if alias and alias in table:
            return ModelSelection(user_model=alias, internal_model=table[alias], outcome=Outcome.RESOLVED)

        fallback = self._default_alias(kind, table)
        if alias:
            logger.warning(f"模型 {alias} 不在支持列表中，降级到默认模型 {fallback}")
        return ModelSelection(user_model=fallback, internal_model=table[fallback], outcome=Outcome.DEFAULTED)

    @staticmethod
    def supported_tiers(user_model: str, region: RegionInfo) -> Tuple[str, ...]:
        """获取模型在该区域可用的分辨率档位"""
        if region.is_international and user_model in MODEL_RESOLUTION_TIERS_INTERNATIONAL:
            return MODEL_RESOLUTION_TIERS_INTERNATIONAL[user_model]
        return MODEL_RESOLUTION_TIERS.get(user_model, RESOLUTION_TIERS)

    @staticmethod
    def _nearest_tier(requested_value: int, tiers: Tuple[str, ...]) -> str:
        # 距离相同取较低档位
        return min(tiers, key=lambda tier: (abs(int(tier[:-1]) - requested_value), int(tier[:-1])))

    def resolve_resolution(
        self,
        user_model: str,
        region: RegionInfo,
        resolution: Optional[str],
        ratio: Optional[str],
    ) -> ResolutionSpec:
        """
        根据模型能力把 (分辨率档位, 比例) 解析为具体宽高

        Args:
            user_model: 对外模型名
            region: 凭证区域信息
            resolution: 请求的分辨率档位，如 1k/2k/4k
            ratio: 请求的宽高比，如 16:9

        Returns:
            ResolutionSpec: 实际发送的分辨率，档位不可用时收敛到最近可用档位

        Raises:
            ValidationFailure: 比例不支持或分辨率格式无法识别
        """
        ratio_key = (ratio or "1:1").strip()
        if ratio_key not in IMAGE_RATIO_CODES:
            raise ValidationFailure(
                f"不支持的比例: {ratio}，可选值: {', '.join(IMAGE_RATIO_CODES)}",
                parameter="ratio",
            )

        requested = (resolution or DEFAULT_RESOLUTION).strip().lower()
        match = TIER_PATTERN.match(requested)
        if not match:
            raise ValidationFailure(
                f"不支持的分辨率: {resolution}，可选值: {', '.join(RESOLUTION_TIERS)}",
                parameter="resolution",
            )

        tiers = self.supported_tiers(user_model, region)
        if requested in tiers:
            tier, outcome = requested, Outcome.RESOLVED
        else:
            tier, outcome = self._nearest_tier(int(match.group(1)), tiers), Outcome.CLAMPED
            logger.warning(f"模型 {user_model} 不支持分辨率 {requested}，已调整为 {tier}")

        width, height = RESOLUTION_DIMENSIONS[tier][ratio_key]
        return ResolutionSpec(
            width=width,
            height=height,
            resolution_type=tier,
            image_ratio=IMAGE_RATIO_CODES[ratio_key],
            ratio=ratio_key,
            outcome=outcome,
            requested=requested,
        )


model_service = ModelService()
