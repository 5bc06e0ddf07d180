import base64
import binascii
import datetime
import random
import string
import zlib
from dataclasses import dataclass
from enum import Enum
from hashlib import sha256
from hmac import HMAC
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
from urllib.parse import quote

import aiofiles
import aiofiles.os

from jimeng_api.core.config_manager import config_manager
from jimeng_api.core.constants import MAX_COMPOSITION_IMAGES, MAX_VIDEO_IMAGES
from jimeng_api.core.exceptions import JimengAPIError, UploadFailure, ValidationFailure
from jimeng_api.core.logger.logger import get_logger
from jimeng_api.core.region import get_region_endpoint, parse_region
from jimeng_api.models.generation import RegionInfo, UploadedAsset
from jimeng_api.service.request_service import RequestService

logger = get_logger(__name__)

ImageSource = Union[str, bytes]

IMAGEX_VERSION = "2018-08-01"
IMAGEX_SERVICE = "imagex"
UPLOAD_TOKEN_PATH = "/mweb/v1/get_upload_token"


class SourceKind(str, Enum):
    """图片来源类型"""
    URL = "url"
    LOCAL_PATH = "local_path"
    BYTES = "bytes"
    DATA_URL = "data_url"


@dataclass(frozen=True)
class UploadPolicy:
    """
    按任务类型区分的上传策略

    Attributes:
        name: 策略名称，仅用于日志
        min_count: 最少图片数
        max_count: 最多图片数
        tolerated_from: 从该序号开始上传失败只记录警告，None 表示任何失败都中止任务
        skip_blank: 是否跳过空路径
    """
    name: str
    min_count: int
    max_count: int
    tolerated_from: Optional[int] = None
    skip_blank: bool = False

    def is_fatal(self, index: int) -> bool:
        return self.tolerated_from is None or index < self.tolerated_from


COMPOSITION_UPLOAD_POLICY = UploadPolicy(
    name="composition",
    min_count=1,
    max_count=MAX_COMPOSITION_IMAGES,
)

VIDEO_UPLOAD_POLICY = UploadPolicy(
    name="video",
    min_count=0,
    max_count=MAX_VIDEO_IMAGES,
    tolerated_from=1,
    skip_blank=True,
)


def _is_blank(source: Any) -> bool:
    if source is None:
        return True
    if isinstance(source, str):
        return not source.strip()
    if isinstance(source, (bytes, bytearray)):
        return len(source) == 0
    return False


def _random_string(length: int = 11) -> str:
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=length))


def _canonical_query(params: Dict[str, Any]) -> str:
    return "&".join(
        f"{quote(str(key), safe='-_.~')}={quote(str(value), safe='-_.~')}"
        for key, value in sorted(params.items())
    )


class UploadService:
    """
    图片上传服务，把URL、本地路径、内存数据或 data URL 统一上传为即梦图片URI
    """

    def __init__(self, request_service: Optional[RequestService] = None, max_size: Optional[float] = None):
        """
        初始化上传服务

        Args:
            request_service: 即梦请求服务
            max_size: 单张图片大小上限（MB），默认读取 upload.max_size
        """
        self.request_service = request_service or RequestService()
        self.max_size = max_size if max_size is not None else config_manager.get("upload.max_size", 10)

    @staticmethod
    def validate_count(sources: Sequence[ImageSource], policy: UploadPolicy) -> List[Tuple[int, ImageSource]]:
        """
        检查图片数量，返回需要上传的 (序号, 来源) 列表

        Raises:
            ValidationFailure: 数量超出策略范围
        """
        # 上限按调用方传入的条目数计算，空路径同样占位
        if len(sources) > policy.max_count:
            raise ValidationFailure(
                f"最多支持 {policy.max_count} 张输入图片，当前 {len(sources)} 张", parameter="images"
            )

        entries: List[Tuple[int, ImageSource]] = []
        for index, source in enumerate(sources):
            if policy.skip_blank and _is_blank(source):
                logger.warning(f"第 {index + 1} 个图片路径为空，跳过")
                continue
            entries.append((index, source))

        if len(entries) < policy.min_count:
            raise ValidationFailure(f"至少需要提供 {policy.min_count} 张输入图片", parameter="images")
        return entries

    @staticmethod
    async def classify_source(source: ImageSource) -> SourceKind:
        """
        判断图片来源类型

        本地路径必须以 / 开头且文件存在，其余字符串只接受 http(s) 与 data URL。

        Raises:
            ValidationFailure: 无法识别的来源
        """
        if isinstance(source, (bytes, bytearray)):
            if not source:
                raise ValidationFailure("图片内容为空", parameter="images")
            return SourceKind.BYTES
        if not isinstance(source, str) or not source.strip():
            raise ValidationFailure("图片来源为空", parameter="images")

        value = source.strip()
        lowered = value.lower()
        if lowered.startswith("data:"):
            return SourceKind.DATA_URL
        if lowered.startswith(("http://", "https://")):
            return SourceKind.URL
        if value.startswith("/") and await aiofiles.os.path.exists(value):
            return SourceKind.LOCAL_PATH
        raise ValidationFailure(f"无法识别的图片来源: {value[:100]}", parameter="images")

    async def read_source(self, source: ImageSource, kind: SourceKind) -> bytes:
        """把各种来源读取为图片字节"""
        if kind == SourceKind.BYTES:
            return bytes(source)
        if kind == SourceKind.DATA_URL:
            return self._decode_data_url(source.strip())
        if kind == SourceKind.LOCAL_PATH:
            logger.info(f"读取本地缓存图片: {source}")
            async with aiofiles.open(source.strip(), "rb") as f:
                return await f.read()

        logger.info(f"下载图片: {source}")
        return await self.request_service.download(
            source.strip(),
            max_bytes=int(self.max_size * 1024 * 1024),
            timeout=config_manager.get("upload.download_timeout", 30.0),
        )

    @staticmethod
    def _decode_data_url(data_url: str) -> bytes:
        header, sep, payload = data_url.partition(",")
        if not sep or ";base64" not in header.lower():
            raise UploadFailure("data URL 必须是 base64 编码")
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise UploadFailure(f"data URL 解码失败: {str(e)}") from e

    async def upload_one(
        self,
        source: ImageSource,
        credential: str,
        region: Optional[RegionInfo] = None,
        index: int = 0,
        kind: Optional[SourceKind] = None,
    ) -> UploadedAsset:
        """
        上传单张图片

        Args:
            source: 图片URL、本地路径、data URL 或字节
            credential: 调用方凭证
            region: 凭证区域信息
            index: 图片序号
            kind: 已知的来源类型

        Returns:
            UploadedAsset: 上传结果

        Raises:
            ValidationFailure: 来源无法识别
            UploadFailure: 读取或上传失败
        """
        region = region or parse_region(credential)
        kind = kind or await self.classify_source(source)
        try:
            image_bytes = await self.read_source(source, kind)
            asset_id = await self.upload_buffer(image_bytes, credential, region)
        except UploadFailure as e:
            e.index = index
            raise
        except (JimengAPIError, OSError) as e:
            raise UploadFailure(f"图片 {index + 1} 上传失败: {str(e)}", index=index) from e
        return UploadedAsset(index=index, source_kind=kind.value, asset_id=asset_id)

    async def upload_sequence(
        self,
        sources: Sequence[ImageSource],
        credential: str,
        region: Optional[RegionInfo],
        policy: UploadPolicy,
    ) -> List[UploadedAsset]:
        """
        按调用方顺序逐张上传

        数量和来源类型在上传前全部校验；上传时按策略决定失败是中止还是跳过。

        Args:
            sources: 图片来源列表
            credential: 调用方凭证
            region: 凭证区域信息
            policy: 上传策略

        Returns:
            List[UploadedAsset]: 按顺序排列的成功上传结果，被容忍的失败不出现在结果中

        Raises:
            ValidationFailure: 数量或来源不合法
            UploadFailure: 关键图片上传失败
        """
        region = region or parse_region(credential)
        entries = self.validate_count(sources, policy)
        total = len(entries)

        classified: List[Tuple[int, ImageSource, Optional[SourceKind]]] = []
        for index, source in entries:
            try:
                classified.append((index, source, await self.classify_source(source)))
            except ValidationFailure as e:
                if policy.is_fatal(index):
                    raise
                logger.warning(f"第 {index + 1} 张图片来源无效，已跳过: {e.message}")

        assets: List[UploadedAsset] = []
        for position, (index, source, kind) in enumerate(classified, start=1):
            logger.info(f"正在上传第 {position}/{total} 张图片 ({kind.value})...")
            try:
                asset = await self.upload_one(source, credential, region, index=index, kind=kind)
            except UploadFailure as e:
                if policy.is_fatal(index):
                    logger.error(f"图片 {index + 1} 上传失败: {e.message}")
                    raise
                logger.warning(f"图片 {index + 1} 上传失败，继续执行: {e.message}")
                continue
            logger.info(f"图片 {index + 1} 上传成功: {asset.asset_id}")
            assets.append(asset)

        logger.info(f"[{policy.name}] 图片上传完成，共成功 {len(assets)}/{total} 张")
        return assets

    # ImageX 上传

    @staticmethod
    def _calculate_signature(
        method: str,
        query: str,
        headers: Dict[str, str],
        payload_hash: str,
        secret_access_key: str,
        amz_date: str,
        imagex_region: str,
    ) -> Tuple[str, str]:
        """
        计算 ImageX 的 AWS SigV4 签名

        Returns:
            Tuple[str, str]: (签名头列表, 签名)
        """
        date_stamp = amz_date[:8]
        credential_scope = f"{date_stamp}/{imagex_region}/{IMAGEX_SERVICE}/aws4_request"
        lowered = {name.lower(): str(value).strip() for name, value in headers.items()}
        signed_names = sorted(lowered)
        canonical_headers = "".join(f"{name}:{lowered[name]}\n" for name in signed_names)
        signed_headers = ";".join(signed_names)
        canonical_request = (
            f"{method}\n"
            "/\n"
            f"{query}\n"
            f"{canonical_headers}\n"
            f"{signed_headers}\n"
            f"{payload_hash}"
        )
        string_to_sign = (
            "AWS4-HMAC-SHA256\n"
            f"{amz_date}\n"
            f"{credential_scope}\n"
            f"{sha256(canonical_request.encode('utf-8')).hexdigest()}"
        )
        k_date = HMAC(f"AWS4{secret_access_key}".encode("utf-8"), date_stamp.encode("utf-8"), sha256).digest()
        k_region = HMAC(k_date, imagex_region.encode("utf-8"), sha256).digest()
        k_service = HMAC(k_region, IMAGEX_SERVICE.encode("utf-8"), sha256).digest()
        k_signing = HMAC(k_service, b"aws4_request", sha256).digest()
        signature = HMAC(k_signing, string_to_sign.encode("utf-8"), sha256).hexdigest()
        return signed_headers, signature

    def _signed_headers(
        self,
        method: str,
        query: str,
        token: Dict[str, Any],
        imagex_region: str,
        payload: bytes = b"",
    ) -> Dict[str, str]:
        amz_date = datetime.datetime.now(datetime.timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        payload_hash = sha256(payload).hexdigest()
        headers = {
            "x-amz-date": amz_date,
            "x-amz-security-token": token["session_token"],
        }
        if method == "POST":
            headers["x-amz-content-sha256"] = payload_hash
        signed_headers, signature = self._calculate_signature(
            method, query, headers, payload_hash, token["secret_access_key"], amz_date, imagex_region
        )
        date_stamp = amz_date[:8]
        headers["Authorization"] = (
            f"AWS4-HMAC-SHA256 Credential={token['access_key_id']}/{date_stamp}/{imagex_region}/"
            f"{IMAGEX_SERVICE}/aws4_request, SignedHeaders={signed_headers}, Signature={signature}"
        )
        return headers

    async def _get_upload_token(self, credential: str) -> Dict[str, Any]:
        logger.info("正在获取上传凭证...")
        token = await self.request_service.request("POST", UPLOAD_TOKEN_PATH, credential, data={"scene": 2})
        if not isinstance(token, dict) or not all(
            token.get(key) for key in ("access_key_id", "secret_access_key", "session_token")
        ):
            raise UploadFailure("获取上传凭证失败: 响应缺少密钥字段")
        return token

    @staticmethod
    def _imagex_result(response: Any, action: str) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError as e:
            raise UploadFailure(f"{action} 响应不是合法的JSON") from e
        if not isinstance(body, dict):
            raise UploadFailure(f"{action} 响应格式错误")
        error = (body.get("ResponseMetadata") or {}).get("Error")
        if error:
            raise UploadFailure(f"{action} 失败: {error.get('Code')} {error.get('Message')}")
        result = body.get("Result")
        if not isinstance(result, dict):
            raise UploadFailure(f"{action} 响应缺少 Result")
        return result

    async def _apply_image_upload(
        self, token: Dict[str, Any], endpoint: Dict[str, str], space: str, file_size: int
    ) -> Dict[str, Any]:
        query = _canonical_query({
            "Action": "ApplyImageUpload",
            "Version": IMAGEX_VERSION,
            "ServiceId": space,
            "FileSize": file_size,
            "s": _random_string(),
        })
        headers = self._signed_headers("GET", query, token, endpoint["imagex_region"])
        response = await self.request_service.fetch("GET", f"{endpoint['imagex_host']}/?{query}", headers=headers)
        result = self._imagex_result(response, "ApplyImageUpload")

        address = result.get("UploadAddress") or {}
        store_info = (address.get("StoreInfos") or [{}])[0]
        upload_hosts = address.get("UploadHosts") or []
        if not store_info.get("StoreUri") or not store_info.get("Auth") or not upload_hosts \
                or not address.get("SessionKey"):
            raise UploadFailure("ApplyImageUpload 响应缺少上传地址")
        return {
            "store_uri": store_info["StoreUri"],
            "auth": store_info["Auth"],
            "upload_host": upload_hosts[0],
            "session_key": address["SessionKey"],
        }

    async def _put_image_bytes(self, address: Dict[str, Any], image_bytes: bytes) -> None:
        crc32 = format(zlib.crc32(image_bytes) & 0xFFFFFFFF, "08x")
        response = await self.request_service.fetch(
            "POST",
            f"https://{address['upload_host']}/upload/v1/{address['store_uri']}",
            headers={
                "Authorization": address["auth"],
                "Content-CRC32": crc32,
                "Content-Type": "application/octet-stream",
                "Content-Disposition": 'attachment; filename="undefined"',
            },
            content=image_bytes,
        )
        try:
            body = response.json()
        except ValueError:
            return
        if isinstance(body, dict) and "code" in body and body["code"] != 2000:
            raise UploadFailure(f"图片数据上传失败: {body.get('message') or body['code']}")

    async def _commit_image_upload(
        self, token: Dict[str, Any], endpoint: Dict[str, str], space: str, session_key: str
    ) -> str:
        query = _canonical_query({
            "Action": "CommitImageUpload",
            "Version": IMAGEX_VERSION,
            "ServiceId": space,
        })
        payload = f'{{"SessionKey":"{session_key}"}}'.encode("utf-8")
        headers = self._signed_headers("POST", query, token, endpoint["imagex_region"], payload)
        headers["Content-Type"] = "application/json"
        response = await self.request_service.fetch(
            "POST", f"{endpoint['imagex_host']}/?{query}", headers=headers, content=payload
        )
        result = self._imagex_result(response, "CommitImageUpload")

        results = result.get("Results") or []
        uri = results[0].get("Uri") if results else None
        if not uri:
            plugin_results = result.get("PluginResult") or []
            uri = plugin_results[0].get("ImageUri") if plugin_results else None
        if not uri:
            raise UploadFailure("CommitImageUpload 响应缺少图片URI")
        return uri

    async def upload_buffer(
        self,
        image_bytes: bytes,
        credential: str,
        region: Optional[RegionInfo] = None,
    ) -> str:
        """
        通过 ImageX 上传图片字节

        流程：获取上传凭证 -> ApplyImageUpload -> 上传数据（带CRC32） -> CommitImageUpload

        Args:
            image_bytes: 图片内容
            credential: 调用方凭证
            region: 凭证区域信息

        Returns:
            str: 即梦图片URI

        Raises:
            UploadFailure: 图片过大或任一步骤失败
        """
        if not image_bytes:
            raise UploadFailure("图片内容为空")
        size_mb = len(image_bytes) / (1024 * 1024)
        if size_mb > self.max_size:
            raise UploadFailure(f"图片大小 {size_mb:.2f}MB 超过限制 {self.max_size}MB")

        region = region or parse_region(credential)
        endpoint = get_region_endpoint(region)
        token = await self._get_upload_token(credential)
        space = token.get("space_name") or endpoint["imagex_space"]

        address = await self._apply_image_upload(token, endpoint, space, len(image_bytes))
        await self._put_image_bytes(address, image_bytes)
        uri = await self._commit_image_upload(token, endpoint, space, address["session_key"])
        logger.info(f"图片上传完成: {uri}")
        return uri
