"""
从即梦响应中提取图片与视频URL

每个提取器都是独立函数，返回URL或None；调用方按顺序执行，取第一个结果。
"""
import json
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from jimeng_api.core.constants import WEBP_SIZE_PRIORITY
from jimeng_api.core.logger.logger import get_logger
from jimeng_api.models.generation import ImageUrlInfo

logger = get_logger(__name__)

Extractor = Callable[[Any], Optional[str]]

ARTIST_VIDEO_URL_PATTERN = re.compile(r'https://v[0-9]+-artist\.vlabvod\.com/[^"\s]+')
DREAMNIA_VIDEO_URL_PATTERN = re.compile(r'https://v[0-9]+-dreamnia\.jimeng\.com/[^"\s\\]+')
JIMENG_VIDEO_URL_PATTERN = re.compile(r'https://v[0-9]+-[^"\\]*\.jimeng\.com/[^"\s\\]+')
ANY_VIDEO_URL_PATTERN = re.compile(r'https://v[0-9]+-[^"\\]*\.(?:vlabvod|jimeng)\.com/[^"\s\\]+')


def unescape_url(url: Optional[str]) -> Optional[str]:
    """还原即梦转义过的 & 符号，重复调用结果不变"""
    if not url:
        return url
    return url.replace("\\u0026", "&")


def _dig(data: Any, *keys: Any) -> Any:
    for key in keys:
        if isinstance(data, dict):
            data = data.get(key)
        elif isinstance(data, list) and isinstance(key, int):
            data = data[key] if -len(data) <= key < len(data) else None
        else:
            return None
        if data is None:
            return None
    return data


def serialize_response(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False)


def run_extractors(extractors: Sequence[Extractor], data: Any) -> Optional[str]:
    """
    按顺序执行提取器，返回第一个非空结果

    Args:
        extractors: 提取器列表
        data: 提取的数据源

    Returns:
        Optional[str]: 第一个成功提取的URL
    """
    for extractor in extractors:
        url = extractor(data)
        if url:
            logger.debug(f"URL提取器 {extractor.__name__} 命中")
            return url
    return None


# 图片

def extract_image_url(item: Dict[str, Any], index: Optional[int] = None) -> Optional[str]:
    """
    提取单张图片的原始PNG地址（image.large_images[0].image_url）

    Args:
        item: item_list 中的一项
        index: 图片序号，仅用于日志

    Returns:
        Optional[str]: 图片URL，缺少字段时返回None
    """
    label = f"图片 {index + 1}" if index is not None else "图片"
    url = _dig(item, "image", "large_images", 0, "image_url")
    if url:
        logger.debug(f"{label}: 使用 large_images URL")
        return unescape_url(url)
    logger.warning(f"{label}: 无法提取URL，缺少 image.large_images[0].image_url 字段")
    return None


def extract_image_url_info(item: Dict[str, Any], index: Optional[int] = None) -> ImageUrlInfo:
    """
    提取单张图片的全部URL

    - png: image.large_images[0].image_url，约2小时有效
    - webp: common_attr.cover_url（2048），约2小时有效
    - webp_sizes: common_attr.cover_url_map，约29天有效
    - webp_long: webp_sizes 中按 2400/1080/720/480/360 顺序取第一个
    """
    png = _dig(item, "image", "large_images", 0, "image_url")
    webp = _dig(item, "common_attr", "cover_url")

    webp_sizes: Dict[str, str] = {}
    cover_map = _dig(item, "common_attr", "cover_url_map")
    if isinstance(cover_map, dict):
        for key, value in cover_map.items():
            if value:
                webp_sizes[str(key)] = unescape_url(value)

    webp_long = next((webp_sizes[key] for key in WEBP_SIZE_PRIORITY if webp_sizes.get(key)), None)

    info = ImageUrlInfo(
        png=unescape_url(png) if png else None,
        webp=unescape_url(webp) if webp else None,
        webp_long=webp_long,
        webp_sizes=webp_sizes,
    )
    label = f"图片 {index + 1}" if index is not None else "图片"
    logger.debug(
        f"{label}: png={bool(info.png)}, webp={bool(info.webp)}, "
        f"webp_long={bool(info.webp_long)}, sizes={len(webp_sizes)}"
    )
    return info


def extract_image_urls(items: Iterable[Dict[str, Any]]) -> List[str]:
    """批量提取PNG地址，跳过缺失的项"""
    urls = (extract_image_url(item, index) for index, item in enumerate(items))
    return [url for url in urls if url]


def extract_all_image_urls(items: Iterable[Dict[str, Any]]) -> List[ImageUrlInfo]:
    return [extract_image_url_info(item, index) for index, item in enumerate(items)]


# 视频

def _video_field(item: Any, *path: str) -> Optional[str]:
    value = _dig(item, "video", *path)
    return value if isinstance(value, str) and value else None


def transcoded_origin_url(item: Any) -> Optional[str]:
    return _video_field(item, "transcoded_video", "origin", "video_url")


def play_url(item: Any) -> Optional[str]:
    return _video_field(item, "play_url")


def download_url(item: Any) -> Optional[str]:
    return _video_field(item, "download_url")


def plain_url(item: Any) -> Optional[str]:
    return _video_field(item, "url")


# 查询结果中的视频字段优先级
VIDEO_ITEM_EXTRACTORS = (transcoded_origin_url, play_url, download_url, plain_url)

# 高质量下载接口中下载地址优先于播放地址
HQ_VIDEO_ITEM_EXTRACTORS = (transcoded_origin_url, download_url, play_url, plain_url)


def extract_video_url(item: Any) -> Optional[str]:
    """从单个视频项中按字段优先级提取视频URL"""
    return run_extractors(VIDEO_ITEM_EXTRACTORS, item)


def _pattern_extractor(pattern: "re.Pattern[str]", name: str) -> Extractor:
    def extractor(data: Any) -> Optional[str]:
        match = pattern.search(data if isinstance(data, str) else serialize_response(data))
        return match.group(0) if match else None

    extractor.__name__ = name
    return extractor


artist_url_in_response = _pattern_extractor(ARTIST_VIDEO_URL_PATTERN, "artist_url_in_response")
dreamnia_url_in_response = _pattern_extractor(DREAMNIA_VIDEO_URL_PATTERN, "dreamnia_url_in_response")
jimeng_url_in_response = _pattern_extractor(JIMENG_VIDEO_URL_PATTERN, "jimeng_url_in_response")
any_video_url_in_response = _pattern_extractor(ANY_VIDEO_URL_PATTERN, "any_video_url_in_response")


def first_history_item_video_url(record: Any) -> Optional[str]:
    """history 记录中第一个视频项的结构化地址"""
    return extract_video_url(_dig(record, "item_list", 0))


def first_local_item_video_url(result: Any) -> Optional[str]:
    """get_local_item_list 响应中第一个视频项的结构化地址"""
    if not isinstance(result, dict):
        return None
    items = result.get("item_list") or result.get("local_item_list") or []
    if not isinstance(items, list) or not items:
        return None
    return run_extractors(HQ_VIDEO_ITEM_EXTRACTORS, items[0])


# 视频任务查询：先在整个响应中匹配，再读第一个视频项的字段
VIDEO_STATUS_EXTRACTORS = (artist_url_in_response,)

# 高质量视频下载地址
HQ_VIDEO_EXTRACTORS = (
    first_local_item_video_url,
    dreamnia_url_in_response,
    jimeng_url_in_response,
    any_video_url_in_response,
)
