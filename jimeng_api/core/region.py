"""
凭证区域解析
"""
import re
from typing import Mapping

from jimeng_api.core.constants import (
    ASSISTANT_ID_CN,
    ASSISTANT_ID_INTERNATIONAL,
    INTERNATIONAL_REGIONS,
    REGION_ENDPOINTS,
)
from jimeng_api.core.exceptions import CredentialMalformed
from jimeng_api.models.generation import RegionInfo

# 形如 "us-xxxx" 的区域前缀
REGION_MARKER_PATTERN = re.compile(r"^([A-Za-z]{2})-(.*)$", re.DOTALL)


def parse_region(credential: str) -> RegionInfo:
    """
    从凭证中解析区域信息

    凭证格式为 ``[<区域>-]<会话令牌>``，无前缀或 ``cn-`` 前缀视为国内站，
    ``us-``/``hk-``/``jp-``/``sg-`` 视为国际站。每次调用都重新解析，不做缓存。

    Args:
        credential: 调用方提供的凭证

    Returns:
        RegionInfo: 区域信息

    Raises:
        CredentialMalformed: 凭证为空或区域标识无法识别
    """
    if not isinstance(credential, str) or not credential.strip():
        raise CredentialMalformed("凭证为空")

    token = credential.strip()
    code = "cn"
    match = REGION_MARKER_PATTERN.match(token)
    if match:
        marker = match.group(1).lower()
        if marker not in REGION_ENDPOINTS:
            raise CredentialMalformed(f"无法识别的区域标识: {marker}")
        code = marker
        token = match.group(2).strip()

    if not token:
        raise CredentialMalformed("凭证缺少会话令牌")

    is_international = code in INTERNATIONAL_REGIONS
    return RegionInfo(
        code=code,
        is_international=is_international,
        assistant_id=ASSISTANT_ID_INTERNATIONAL if is_international else ASSISTANT_ID_CN,
        session_token=token,
    )


def get_assistant_id(region: RegionInfo) -> int:
    """获取区域对应的助手ID"""
    return ASSISTANT_ID_INTERNATIONAL if region.is_international else ASSISTANT_ID_CN


def get_region_endpoint(region: RegionInfo) -> Mapping[str, str]:
    """获取区域对应的接口地址"""
    return REGION_ENDPOINTS.get(region.code, REGION_ENDPOINTS["cn"])


def mask_token(credential: str) -> str:
    """日志中只显示凭证前几位"""
    if not credential:
        return ""
    return f"{credential[:6]}..."
