"""
即梦生成请求构造

纯函数，按 core_param -> metrics_extra -> draft_content -> generate_request 的顺序组合。
视频请求结构与图片差异较大，单独构造。
"""
import json
import random
import time
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from jimeng_api.core.constants import (
    AIGC_FEATURES,
    DEFAULT_VIDEO_BENEFIT_TYPE,
    DRAFT_MIN_VERSION,
    DRAFT_VERSION,
    SEED_BASE,
    SEED_RANGE,
    VIDEO_BENEFIT_TYPES,
    VIDEO_DRAFT_MIN_VERSION,
    VIDEO_DURATION_RULES,
    WEB_VERSION,
)
from jimeng_api.core.region import get_assistant_id
from jimeng_api.models.generation import (
    CoreParam,
    GenerateMode,
    GenerateRequest,
    RegionInfo,
    ResolutionSpec,
)

IMAGE_SCENE = "ImageBasicGenerate"
VIDEO_SCENE = "BasicVideoGenerateButton"
VIDEO_FUNCTION_MODE = "first_last_frames"
BLEND_ABILITY_NAME = "byte_edit"
# 埋点中输入图片的 blob 来源，各区域相同
METRICS_BLOB_ORIGIN = "https://dreamina.capcut.com"


def new_id() -> str:
    return str(uuid.uuid4())


def generate_seed() -> int:
    return SEED_BASE + random.randrange(SEED_RANGE)


def _dumps(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


def _request_params() -> Dict[str, Any]:
    return {
        "da_version": DRAFT_VERSION,
        "web_version": WEB_VERSION,
        "aigc_features": AIGC_FEATURES,
    }


def _component_metadata() -> Dict[str, Any]:
    return {
        "type": "",
        "id": new_id(),
        "created_platform": 3,
        "created_platform_version": "",
        "created_time_in_ms": str(int(time.time() * 1000)),
        "created_did": "",
    }


# 图片

def build_core_param(
    *,
    user_model: str,
    model: str,
    prompt: str,
    resolution: ResolutionSpec,
    negative_prompt: str = "",
    sample_strength: float = 0.5,
    intelligent_ratio: bool = False,
    mode: GenerateMode = GenerateMode.TEXT2IMG,
    image_count: int = 0,
    seed: Optional[int] = None,
) -> CoreParam:
    """
    构造任务意图

    图生图模式下每张输入图片对应提示词前的一个 ``##`` 占位符。

    Args:
        user_model: 对外模型名
        model: 即梦内部模型标识
        prompt: 提示词
        resolution: 已解析的分辨率
        negative_prompt: 反向提示词
        sample_strength: 精细度
        intelligent_ratio: 是否智能比例
        mode: 生成模式
        image_count: 输入图片数量
        seed: 指定种子，缺省时随机生成

    Returns:
        CoreParam: 任务意图
    """
    if mode == GenerateMode.IMG2IMG:
        prompt = "##" * image_count + prompt
    return CoreParam(
        user_model=user_model,
        model=model,
        prompt=prompt,
        negative_prompt=negative_prompt or "",
        seed=seed if seed is not None else generate_seed(),
        sample_strength=sample_strength,
        resolution=resolution,
        intelligent_ratio=intelligent_ratio,
        mode=mode,
        image_count=image_count,
    )


def serialize_core_param(core_param: CoreParam) -> Dict[str, Any]:
    """把任务意图转换为即梦的 core_param 结构"""
    resolution = core_param.resolution
    return {
        "type": "",
        "id": new_id(),
        "model": core_param.model,
        "prompt": core_param.prompt,
        "negative_prompt": core_param.negative_prompt,
        "seed": core_param.seed,
        "sample_strength": core_param.sample_strength,
        "image_ratio": resolution.image_ratio,
        "large_image_info": {
            "type": "",
            "id": new_id(),
            "height": resolution.height,
            "width": resolution.width,
            "resolution_type": resolution.resolution_type,
        },
        "intelligent_ratio": core_param.intelligent_ratio,
    }


def build_metrics_ability_list(count: int, sample_strength: float) -> List[Dict[str, Any]]:
    """构造 metrics_extra 中每张输入图片的能力描述"""
    return [
        {
            "abilityName": BLEND_ABILITY_NAME,
            "strength": sample_strength,
            "source": {"imageUrl": f"blob:{METRICS_BLOB_ORIGIN}/{new_id()}"},
        }
        for _ in range(count)
    ]


def build_metrics_extra(
    *,
    model: str,
    submit_id: str,
    resolution_type: str,
    scene: str = IMAGE_SCENE,
    ability_list: Sequence[Dict[str, Any]] = (),
) -> str:
    """
    构造即梦要求的埋点信息

    Returns:
        str: JSON 字符串，sceneOptions 字段本身也是 JSON 字符串
    """
    scene_option = {
        "type": "image",
        "scene": scene,
        "modelReqKey": model,
        "resolutionType": resolution_type,
        "abilityList": list(ability_list),
        "reportParams": {
            "enterSource": "generate",
            "vipSource": "generate",
            "extraVipFunctionKey": f"{model}-{resolution_type}",
            "useVipFunctionDetailsReporterHoc": True,
        },
    }
    return _dumps({
        "promptSource": "custom",
        "generateCount": 1,
        "enterFrom": "click",
        "sceneOptions": _dumps([scene_option]),
        "generateId": submit_id,
        "isRegenerate": False,
    })


def build_blend_ability_list(asset_ids: Sequence[str], sample_strength: float) -> List[Dict[str, Any]]:
    """按上传顺序为每张图片构造一个 byte_edit 能力"""
    return [
        {
            "type": "",
            "id": new_id(),
            "name": BLEND_ABILITY_NAME,
            "image_uri_list": [asset_id],
            "image_list": [
                {
                    "type": "image",
                    "id": new_id(),
                    "source_from": "upload",
                    "platform_type": 1,
                    "name": "",
                    "image_uri": asset_id,
                    "width": 0,
                    "height": 0,
                    "format": "",
                    "uri": asset_id,
                }
            ],
            "strength": sample_strength,
        }
        for asset_id in asset_ids
    ]


def build_prompt_placeholder_list(count: int) -> List[Dict[str, Any]]:
    """每张图片一个提示词占位符，ability_index 与能力列表顺序一致"""
    return [{"type": "", "id": new_id(), "ability_index": index} for index in range(count)]


def build_postedit_param() -> Dict[str, Any]:
    return {"type": "", "id": new_id(), "generate_type": 0}


def build_draft_content(
    *,
    component_id: str,
    core_param: CoreParam,
    ability_list: Optional[List[Dict[str, Any]]] = None,
    prompt_placeholder_list: Optional[List[Dict[str, Any]]] = None,
    postedit_param: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    构造 draft_content

    文生图为 generate 组件；图生图为 blend 组件，附带能力列表、占位符列表和后期编辑参数。

    Args:
        component_id: 主组件ID
        core_param: 任务意图
        ability_list: blend 能力列表
        prompt_placeholder_list: 提示词占位符列表
        postedit_param: 后期编辑参数

    Returns:
        Dict[str, Any]: draft_content 结构
    """
    wire_core_param = serialize_core_param(core_param)
    if core_param.mode == GenerateMode.IMG2IMG:
        generate_type = "blend"
        ability = {
            "type": "",
            "id": new_id(),
            "min_features": [],
            "core_param": wire_core_param,
            "ability_list": ability_list or [],
            "prompt_placeholder_info_list": prompt_placeholder_list or [],
            "postedit_param": postedit_param or build_postedit_param(),
        }
    else:
        generate_type = "generate"
        ability = {"type": "", "id": new_id(), "core_param": wire_core_param}

    return {
        "type": "draft",
        "id": new_id(),
        "min_version": DRAFT_MIN_VERSION,
        "min_features": [],
        "is_from_tsn": True,
        "version": DRAFT_VERSION,
        "main_component_id": component_id,
        "component_list": [
            {
                "type": "image_base_component",
                "id": component_id,
                "min_version": DRAFT_MIN_VERSION,
                "aigc_mode": "workbench",
                "metadata": _component_metadata(),
                "generate_type": generate_type,
                "abilities": {"type": "", "id": new_id(), generate_type: ability},
            }
        ],
    }


def build_generate_request(
    *,
    model: str,
    region: RegionInfo,
    submit_id: str,
    draft_content: Dict[str, Any],
    metrics_extra: str,
) -> GenerateRequest:
    """组装最终发送给 aigc_draft/generate 的请求"""
    return GenerateRequest(
        params=_request_params(),
        data={
            "extend": {"root_model": model},
            "submit_id": submit_id,
            "metrics_extra": metrics_extra,
            "draft_content": _dumps(draft_content),
            "http_common_info": {"aid": get_assistant_id(region)},
        },
    )


# 视频

def quantize_video_duration(model: str, seconds: int) -> Tuple[int, int]:
    """
    按模型系列把请求时长量化为即梦接受的时长

    Args:
        model: 即梦内部视频模型标识
        seconds: 请求的秒数

    Returns:
        Tuple[int, int]: (秒, 毫秒)
    """
    for family, allowed, fallback in VIDEO_DURATION_RULES:
        if family in model:
            actual = allowed.get(seconds, fallback)
            return actual, actual * 1000
    raise ValueError(f"视频时长规则缺少兜底项: {model}")


def supports_video_resolution(model: str) -> bool:
    """只有 3.0 系列的非 pro 模型接受 resolution 字段"""
    return "vgfm_3.0" in model and "_pro" not in model


def get_video_benefit_type(model: str) -> str:
    for family, benefit_type in VIDEO_BENEFIT_TYPES:
        if family in model:
            return benefit_type
    return DEFAULT_VIDEO_BENEFIT_TYPE


def build_frame_image(asset_id: str) -> Dict[str, Any]:
    """首帧/尾帧图片描述"""
    return {
        "format": "",
        "height": 0,
        "id": new_id(),
        "image_uri": asset_id,
        "name": "",
        "platform_type": 1,
        "source_from": "upload",
        "type": "image",
        "uri": asset_id,
        "width": 0,
    }


def build_video_metrics_extra(model: str, resolution: str, duration: int) -> str:
    with_resolution = supports_video_resolution(model)
    scene_option: Dict[str, Any] = {"type": "video", "scene": VIDEO_SCENE}
    if with_resolution:
        scene_option["resolution"] = resolution
    scene_option.update({
        "modelReqKey": model,
        "videoDuration": duration,
        "reportParams": {
            "enterSource": "generate",
            "vipSource": "generate",
            "extraVipFunctionKey": f"{model}-{resolution}" if with_resolution else model,
            "useVipFunctionDetailsReporterHoc": True,
        },
    })
    return _dumps({
        "promptSource": "custom",
        "isDefaultSeed": 1,
        "originSubmitId": new_id(),
        "isRegenerate": False,
        "enterFrom": "click",
        "functionMode": VIDEO_FUNCTION_MODE,
        "sceneOptions": _dumps([scene_option]),
    })


def build_video_generate_request(
    *,
    model: str,
    prompt: str,
    region: RegionInfo,
    ratio: str = "1:1",
    resolution: str = "720p",
    duration: int = 5,
    first_frame_asset: Optional[str] = None,
    end_frame_asset: Optional[str] = None,
    seed: Optional[int] = None,
) -> GenerateRequest:
    """
    构造视频生成请求

    Args:
        model: 即梦内部视频模型标识
        prompt: 提示词
        region: 凭证区域信息
        ratio: 视频比例
        resolution: 分辨率，仅部分模型发送
        duration: 请求时长（秒），按模型系列量化
        first_frame_asset: 首帧图片URI
        end_frame_asset: 尾帧图片URI
        seed: 指定种子，缺省时随机生成

    Returns:
        GenerateRequest: 视频生成请求
    """
    actual_duration, duration_ms = quantize_video_duration(model, duration)
    metrics_extra = build_video_metrics_extra(model, resolution, actual_duration)
    component_id = new_id()

    video_input: Dict[str, Any] = {
        "type": "",
        "id": new_id(),
        "min_version": VIDEO_DRAFT_MIN_VERSION,
        "prompt": prompt,
        "video_mode": 2,
        "fps": 24,
        "duration_ms": duration_ms,
    }
    if supports_video_resolution(model):
        video_input["resolution"] = resolution
    if first_frame_asset:
        video_input["first_frame_image"] = build_frame_image(first_frame_asset)
    if end_frame_asset:
        video_input["end_frame_image"] = build_frame_image(end_frame_asset)
    video_input["idip_meta_list"] = []

    draft_content = {
        "type": "draft",
        "id": new_id(),
        "min_version": VIDEO_DRAFT_MIN_VERSION,
        "min_features": [],
        "is_from_tsn": True,
        "version": DRAFT_VERSION,
        "main_component_id": component_id,
        "component_list": [
            {
                "type": "video_base_component",
                "id": component_id,
                "min_version": "1.0.0",
                "aigc_mode": "workbench",
                "metadata": _component_metadata(),
                "generate_type": "gen_video",
                "abilities": {
                    "type": "",
                    "id": new_id(),
                    "gen_video": {
                        "id": new_id(),
                        "type": "",
                        "text_to_video_params": {
                            "type": "",
                            "id": new_id(),
                            "video_gen_inputs": [video_input],
                            "video_aspect_ratio": ratio,
                            "seed": seed if seed is not None else generate_seed(),
                            "model_req_key": model,
                            "priority": 0,
                        },
                        "video_task_extra": metrics_extra,
                    },
                },
                "process_type": 1,
            }
        ],
    }

    commerce_info = {
        "benefit_type": get_video_benefit_type(model),
        "resource_id": "generate_video",
        "resource_id_type": "str",
        "resource_sub_type": "aigc",
    }
    return GenerateRequest(
        params=_request_params(),
        data={
            "extend": {
                "root_model": model,
                "m_video_commerce_info": commerce_info,
                "m_video_commerce_info_list": [dict(commerce_info)],
            },
            "submit_id": new_id(),
            "metrics_extra": metrics_extra,
            "draft_content": _dumps(draft_content),
            "http_common_info": {"aid": get_assistant_id(region)},
        },
    )
