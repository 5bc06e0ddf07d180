"""
即梦接口请求服务
"""
from typing import Any, Dict, Optional

import httpx

from jimeng_api.core.config_manager import config_manager
from jimeng_api.core.cookie_service import CookieService
from jimeng_api.core.exceptions import TransportFailure
from jimeng_api.core.logger.logger import get_logger
from jimeng_api.core.region import get_region_endpoint, mask_token, parse_region

logger = get_logger(__name__)


class RequestService:
    """统一的即梦接口请求服务，不做任何自动重试"""

    def __init__(
        self,
        cookie_service: Optional[CookieService] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        初始化请求服务

        Args:
            cookie_service: 请求头与cookie构造器
            timeout: 请求超时（秒），默认读取 vendor.timeout
            transport: 自定义 httpx 传输层，测试时注入 MockTransport
        """
        self.cookie_service = cookie_service or CookieService()
        self.timeout = timeout if timeout is not None else config_manager.get("vendor.timeout", 45.0)
        self.transport = transport

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        kwargs: Dict[str, Any] = {
            "timeout": timeout if timeout is not None else self.timeout,
            "follow_redirects": True,
        }
        if self.transport is not None:
            kwargs["transport"] = self.transport
        else:
            proxy = config_manager.get("vendor.proxy")
            if proxy:
                kwargs["proxy"] = proxy
        return httpx.AsyncClient(**kwargs)

    async def request(
        self,
        method: str,
        path: str,
        credential: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        发送带认证的即梦接口请求

        Args:
            method: 请求方法
            path: 接口路径，如 /mweb/v1/aigc_draft/generate
            credential: 调用方凭证（可带区域前缀）
            params: 额外查询参数，覆盖公共参数
            data: JSON 请求体
            headers: 额外请求头

        Returns:
            Any: 响应信封中的 data 字段

        Raises:
            TransportFailure: 网络错误、非2xx、非JSON响应或业务错误码
        """
        region = parse_region(credential)
        endpoint = get_region_endpoint(region)
        url = f"{endpoint['base_url']}{path}"
        query = self.cookie_service.get_common_params(region)
        if params:
            query.update(params)
        request_headers = self.cookie_service.get_headers(path, region, extra=headers)

        logger.debug(f"请求即梦接口: {method.upper()} {path} 凭证: {mask_token(credential)}")
        try:
            async with self._client() as client:
                response = await client.request(
                    method=method.upper(),
                    url=url,
                    params=query,
                    json=data,
                    headers=request_headers,
                )
        except httpx.HTTPError as e:
            logger.error(f"请求即梦接口失败: {path} - {str(e)}")
            raise TransportFailure(f"请求即梦接口失败: {str(e)}") from e

        if not response.is_success:
            logger.error(f"即梦接口返回异常状态码: {path} - {response.status_code}")
            raise TransportFailure(
                f"请求失败: {response.status_code} - {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"即梦接口返回非JSON内容: {path}")
            raise TransportFailure(f"响应不是合法的JSON: {path}", status_code=response.status_code) from e

        return self.check_result(body, path)

    @staticmethod
    def check_result(body: Any, path: str = "") -> Any:
        """
        解析即梦接口的 {ret, errmsg, data} 信封

        Args:
            body: 响应体
            path: 接口路径，仅用于日志

        Returns:
            Any: data 字段；无信封时原样返回
        """
        if not isinstance(body, dict) or "ret" not in body:
            return body
        ret = str(body.get("ret"))
        if ret != "0":
            errmsg = body.get("errmsg") or "未知错误"
            logger.error(f"即梦接口业务错误: {path} ret={ret} errmsg={errmsg}")
            raise TransportFailure(f"即梦接口错误 [{ret}]: {errmsg}", ret=ret)
        data = body.get("data")
        return data if data is not None else {}

    async def fetch(
        self,
        method: str,
        url: str,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        发送不经过即梦信封解析的原始请求（图片下载、ImageX 上传）

        Raises:
            TransportFailure: 网络错误或非2xx
        """
        try:
            async with self._client(timeout) as client:
                response = await client.request(method.upper(), url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportFailure(f"请求失败: {url} - {str(e)}") from e
        if not response.is_success:
            raise TransportFailure(
                f"请求失败: {response.status_code} - {response.text[:200]}",
                status_code=response.status_code,
            )
        return response

    async def download(self, url: str, max_bytes: int, timeout: Optional[float] = None) -> bytes:
        """
        流式下载远程文件，超过大小上限立即中止

        Args:
            url: 文件地址
            max_bytes: 允许的最大字节数
            timeout: 超时（秒）

        Returns:
            bytes: 文件内容

        Raises:
            TransportFailure: 网络错误、非2xx或超过大小上限
        """
        try:
            async with self._client(timeout) as client:
                async with client.stream("GET", url) as response:
                    if not response.is_success:
                        raise TransportFailure(
                            f"请求失败: {response.status_code} - {url}",
                            status_code=response.status_code,
                        )
                    declared = response.headers.get("content-length")
                    if declared and declared.isdigit() and int(declared) > max_bytes:
                        raise TransportFailure(f"文件大小 {declared} 字节超过上限 {max_bytes} 字节: {url}")

                    chunks = []
                    received = 0
                    async for chunk in response.aiter_bytes():
                        received += len(chunk)
                        if received > max_bytes:
                            raise TransportFailure(f"文件超过大小上限 {max_bytes} 字节: {url}")
                        chunks.append(chunk)
        except httpx.HTTPError as e:
            raise TransportFailure(f"请求失败: {url} - {str(e)}") from e
        return b"".join(chunks)
