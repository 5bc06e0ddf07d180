import hashlib
import random
import time
import uuid
from typing import Any, Dict, Optional

from jimeng_api.core.constants import (
    AIGC_FEATURES,
    DRAFT_VERSION,
    PLATFORM_CODE,
    VERSION_CODE,
    WEB_VERSION,
)
from jimeng_api.core.region import get_region_endpoint
from jimeng_api.models.generation import RegionInfo


class CookieService:
    def __init__(self, web_id: Optional[str] = None, user_id: Optional[str] = None):
        """
        初始化Cookie服务

        Args:
            web_id: 模拟浏览器的 web_id，缺省时随机生成
            user_id: 模拟的用户ID，缺省时随机生成
        """
        self.web_id = web_id or str(random.randint(7000000000000000000, 7999999999999999999))
        self.user_id = user_id or uuid.uuid4().hex

    def generate_cookie(self, region: RegionInfo) -> str:
        """
        生成请求cookie

        Args:
            region: 凭证区域信息

        Returns:
            str: cookie字符串
        """
        token = region.session_token
        endpoint = get_region_endpoint(region)
        now = int(time.time())
        parts = [
            f"_tea_web_id={self.web_id}",
            "is_staff_user=false",
            f"store-region={endpoint['store_region']}",
            "store-region-src=uid",
            f"sid_guard={token}%7C{now}%7C5184000%7CMon%2C+03-Feb-2025+08%3A17%3A09+GMT",
            f"uid_tt={self.user_id}",
            f"uid_tt_ss={self.user_id}",
            f"sid_tt={token}",
            f"sessionid={token}",
            f"sessionid_ss={token}",
        ]
        return "; ".join(parts)

    @staticmethod
    def sign(uri: str, device_time: int) -> str:
        """计算请求签名"""
        raw = f"9e2c|{uri[-7:]}|{PLATFORM_CODE}|{VERSION_CODE}|{device_time}||11ac"
        return hashlib.md5(raw.encode("utf-8")).hexdigest()

    def get_headers(self, uri: str, region: RegionInfo, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """
        获取请求头

        Args:
            uri: 请求路径，参与签名
            region: 凭证区域信息
            extra: 额外请求头

        Returns:
            Dict[str, str]: 完整的请求头字典
        """
        endpoint = get_region_endpoint(region)
        device_time = int(time.time())
        headers = {
            "Accept": "application/json, text/plain, */*",
            "Accept-Encoding": "gzip, deflate, br, zstd",
            "Accept-Language": "zh-CN,zh;q=0.9" if region.is_cn else "en-US,en;q=0.9",
            "Cache-Control": "no-cache",
            "Content-Type": "application/json",
            "Origin": endpoint["origin"],
            "Referer": f"{endpoint['origin']}/",
            "Pragma": "no-cache",
            "Sec-Fetch-Dest": "empty",
            "Sec-Fetch-Mode": "cors",
            "Sec-Fetch-Site": "same-origin",
            "User-Agent": (
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                "(KHTML, like Gecko) Chrome/132.0.0.0 Safari/537.36"
            ),
            "Appid": str(region.assistant_id),
            "Appvr": VERSION_CODE,
            "Pf": PLATFORM_CODE,
            "Device-Time": str(device_time),
            "Sign": self.sign(uri, device_time),
            "Sign-Ver": "1",
            "Cookie": self.generate_cookie(region),
        }
        if extra:
            headers.update(extra)
        return headers

    def get_common_params(self, region: RegionInfo) -> Dict[str, Any]:
        """获取每个请求都携带的查询参数"""
        return {
            "aid": region.assistant_id,
            "device_platform": "web",
            "region": region.code.upper() if region.is_international else "cn",
            "webId": self.web_id,
            "da_version": DRAFT_VERSION,
            "web_component_open_flag": 1,
            "web_version": WEB_VERSION,
            "aigc_features": AIGC_FEATURES,
        }
