"""
即梦接口常量与静态映射表

所有按模型/区域分支的规则都以只读映射表表达，便于单独审计与测试。
"""
from types import MappingProxyType

# 协议版本常量
DRAFT_VERSION = "3.3.4"
DRAFT_MIN_VERSION = "3.0.2"
VIDEO_DRAFT_MIN_VERSION = "3.0.5"
WEB_VERSION = "7.5.0"
AIGC_FEATURES = "app_lip_sync"
PLATFORM_CODE = "7"
VERSION_CODE = "5.8.0"

# 助手ID
ASSISTANT_ID_CN = 513695
ASSISTANT_ID_INTERNATIONAL = 513641

# 区域 -> 接口地址
REGION_ENDPOINTS = MappingProxyType({
    "cn": MappingProxyType({
        "base_url": "https://jimeng.jianying.com",
        "origin": "https://jimeng.jianying.com",
        "imagex_host": "https://imagex.bytedanceapi.com",
        "imagex_region": "cn-north-1",
        "imagex_space": "tb4s082cfz",
        "store_region": "cn-gd",
    }),
    "us": MappingProxyType({
        "base_url": "https://dreamina-api.us.capcut.com",
        "origin": "https://dreamina.capcut.com",
        "imagex_host": "https://imagex16-normal-us-ttp.capcutapi.us",
        "imagex_region": "us-east-1",
        "imagex_space": "wopfjsm1ax",
        "store_region": "us",
    }),
    "hk": MappingProxyType({
        "base_url": "https://mweb-api-sg.capcut.com",
        "origin": "https://dreamina.capcut.com",
        "imagex_host": "https://imagex-normal-sg.capcutapi.com",
        "imagex_region": "ap-singapore-1",
        "imagex_space": "wopfjsm1ax",
        "store_region": "hk",
    }),
    "jp": MappingProxyType({
        "base_url": "https://mweb-api-sg.capcut.com",
        "origin": "https://dreamina.capcut.com",
        "imagex_host": "https://imagex-normal-sg.capcutapi.com",
        "imagex_region": "ap-singapore-1",
        "imagex_space": "wopfjsm1ax",
        "store_region": "jp",
    }),
    "sg": MappingProxyType({
        "base_url": "https://mweb-api-sg.capcut.com",
        "origin": "https://dreamina.capcut.com",
        "imagex_host": "https://imagex-normal-sg.capcutapi.com",
        "imagex_region": "ap-singapore-1",
        "imagex_space": "wopfjsm1ax",
        "store_region": "sg",
    }),
})

INTERNATIONAL_REGIONS = frozenset({"us", "hk", "jp", "sg"})

# 默认模型（未知别名时的兜底）
DEFAULT_IMAGE_MODEL = "jimeng-4.5"
DEFAULT_VIDEO_MODEL = "jimeng-video-3.0"

# 图片模型别名 -> 内部模型标识
IMAGE_MODEL_MAP = MappingProxyType({
    "jimeng-4.5": "high_aigc_t2i_v45",
    "jimeng-4.1": "high_aigc_t2i_v41",
    "jimeng-4.0": "high_aigc_t2i_v40",
    "jimeng-3.1": "high_aigc_t2i_v31",
    "jimeng-3.0": "high_aigc_t2i_v30",
    "jimeng-2.1": "high_aigc_t2i_v21_L",
    "jimeng-2.0-pro": "high_aigc_t2i_v20_L",
    "jimeng-2.0": "high_aigc_t2i_v20",
    "jimeng-1.4": "high_aigc_t2i_v14",
    "jimeng-xl-pro": "text2img_xl_sft",
})

IMAGE_MODEL_MAP_INTERNATIONAL = MappingProxyType({
    "jimeng-4.5": "high_aigc_t2i_v45",
    "jimeng-4.1": "high_aigc_t2i_v41",
    "jimeng-4.0": "high_aigc_t2i_v40",
    "jimeng-3.1": "high_aigc_t2i_v31",
    "jimeng-3.0": "high_aigc_t2i_v30",
    "jimeng-2.1": "high_aigc_t2i_v21_L",
    "jimeng-2.0-pro": "high_aigc_t2i_v2.0_pro",
    "jimeng-2.0": "high_aigc_t2i_v20_L",
    "jimeng-1.4": "high_aigc_t2i_v14",
    "jimeng-xl-pro": "text2img_xl_sft",
})

# 视频模型别名 -> 内部模型标识
VIDEO_MODEL_MAP = MappingProxyType({
    "jimeng-video-veo3.1": "dreamina_veo3.1_generate_video",
    "jimeng-video-veo3": "dreamina_veo3_generate_video",
    "jimeng-video-sora2": "dreamina_sora2_generate_video",
    "jimeng-video-3.5-pro": "dreamina_ic_generate_video_model_vgfm_3.5_pro",
    "jimeng-video-3.0-pro": "dreamina_ic_generate_video_model_vgfm_3.0_pro",
    "jimeng-video-3.0": "dreamina_ic_generate_video_model_vgfm_3.0",
    "jimeng-video-3.0-fast": "dreamina_ic_generate_video_model_vgfm_3.0_fast",
    "jimeng-video-2.0-pro": "dreamina_ic_generate_video_model_vgfm1.0",
    "jimeng-video-2.0": "dreamina_ic_generate_video_model_vgfm_lite",
})

VIDEO_MODEL_MAP_INTERNATIONAL = MappingProxyType({
    "jimeng-video-veo3.1": "dreamina_veo3.1_generate_video",
    "jimeng-video-veo3": "dreamina_veo3_generate_video",
    "jimeng-video-sora2": "dreamina_sora2_generate_video",
    "jimeng-video-3.5-pro": "dreamina_ic_generate_video_model_vgfm_3.5_pro",
    "jimeng-video-3.0-pro": "dreamina_ic_generate_video_model_vgfm_3.0_pro",
    "jimeng-video-3.0": "dreamina_ic_generate_video_model_vgfm_3.0",
    "jimeng-video-3.0-fast": "dreamina_ic_generate_video_model_vgfm_3.0_fast",
    "jimeng-video-2.0-pro": "dreamina_ic_generate_video_model_vgfm1.0",
    "jimeng-video-2.0": "dreamina_ic_generate_video_model_vgfm_lite",
})

MODEL_TABLES = MappingProxyType({
    ("image", False): IMAGE_MODEL_MAP,
    ("image", True): IMAGE_MODEL_MAP_INTERNATIONAL,
    ("video", False): VIDEO_MODEL_MAP,
    ("video", True): VIDEO_MODEL_MAP_INTERNATIONAL,
})

DEFAULT_MODELS = MappingProxyType({
    "image": DEFAULT_IMAGE_MODEL,
    "video": DEFAULT_VIDEO_MODEL,
})

# 分辨率档位，按从低到高排列
RESOLUTION_TIERS = ("1k", "2k", "4k")

# 比例 -> 即梦内部比例编号
IMAGE_RATIO_CODES = MappingProxyType({
    "1:1": 1,
    "3:4": 2,
    "16:9": 3,
    "4:3": 4,
    "9:16": 5,
    "2:3": 6,
    "3:2": 7,
    "21:9": 8,
})

# 档位 -> 比例 -> (宽, 高)
RESOLUTION_DIMENSIONS = MappingProxyType({
    "1k": MappingProxyType({
        "1:1": (1328, 1328),
        "4:3": (1472, 1104),
        "3:4": (1104, 1472),
        "16:9": (1664, 936),
        "9:16": (936, 1664),
        "3:2": (1584, 1056),
        "2:3": (1056, 1584),
        "21:9": (2016, 864),
    }),
    "2k": MappingProxyType({
        "1:1": (2048, 2048),
        "4:3": (2304, 1728),
        "3:4": (1728, 2304),
        "16:9": (2560, 1440),
        "9:16": (1440, 2560),
        "3:2": (2496, 1664),
        "2:3": (1664, 2496),
        "21:9": (3024, 1296),
    }),
    "4k": MappingProxyType({
        "1:1": (4096, 4096),
        "4:3": (4704, 3520),
        "3:4": (3520, 4704),
        "16:9": (5504, 3040),
        "9:16": (3040, 5504),
        "3:2": (4992, 3328),
        "2:3": (3328, 4992),
        "21:9": (6240, 2656),
    }),
})

# 模型支持的分辨率档位
MODEL_RESOLUTION_TIERS = MappingProxyType({
    "jimeng-4.5": ("1k", "2k", "4k"),
    "jimeng-4.1": ("1k", "2k", "4k"),
    "jimeng-4.0": ("1k", "2k", "4k"),
    "jimeng-3.1": ("1k", "2k"),
    "jimeng-3.0": ("1k", "2k"),
    "jimeng-2.1": ("1k",),
    "jimeng-2.0-pro": ("1k",),
    "jimeng-2.0": ("1k",),
    "jimeng-1.4": ("1k",),
    "jimeng-xl-pro": ("1k",),
})

# 国际站对部分模型进一步收窄档位
MODEL_RESOLUTION_TIERS_INTERNATIONAL = MappingProxyType({
    "jimeng-3.1": ("2k",),
    "jimeng-3.0": ("2k",),
})

# 视频时长量化表：(模型子串, {请求秒数: 实际秒数}, 兜底秒数)，按顺序匹配
VIDEO_DURATION_RULES = (
    ("veo3", MappingProxyType({}), 8),
    ("sora2", MappingProxyType({12: 12, 8: 8}), 4),
    ("3.5_pro", MappingProxyType({12: 12, 10: 10}), 5),
    ("", MappingProxyType({10: 10}), 5),
)

VALID_VIDEO_DURATIONS = frozenset({4, 5, 8, 10, 12})

# 视频权益类型：(模型子串, 权益类型)，按顺序匹配
VIDEO_BENEFIT_TYPES = (
    ("veo3.1", "generate_video_veo3.1"),
    ("veo3", "generate_video_veo3"),
    ("sora2", "generate_video_sora2"),
    ("3.5_pro", "dreamina_video_seedance_15_pro"),
    ("3.5", "dreamina_video_seedance_15"),
)
DEFAULT_VIDEO_BENEFIT_TYPE = "basic_video_operation_vgfm_v_three"

# 图片上传数量上限
MAX_COMPOSITION_IMAGES = 10
MAX_VIDEO_IMAGES = 2

# 图片任务查询时请求的封面尺寸
IMAGE_SCENE_LIST = (
    {"scene": "smart_crop", "width": 360, "height": 360, "uniq_key": "smart_crop-w:360-h:360", "format": "webp"},
    {"scene": "smart_crop", "width": 480, "height": 480, "uniq_key": "smart_crop-w:480-h:480", "format": "webp"},
    {"scene": "smart_crop", "width": 720, "height": 720, "uniq_key": "smart_crop-w:720-h:720", "format": "webp"},
    {"scene": "smart_crop", "width": 720, "height": 480, "uniq_key": "smart_crop-w:720-h:480", "format": "webp"},
    {"scene": "normal", "width": 2400, "height": 2400, "uniq_key": "2400", "format": "webp"},
    {"scene": "normal", "width": 1080, "height": 1080, "uniq_key": "1080", "format": "webp"},
    {"scene": "normal", "width": 720, "height": 720, "uniq_key": "720", "format": "webp"},
    {"scene": "normal", "width": 480, "height": 480, "uniq_key": "480", "format": "webp"},
    {"scene": "normal", "width": 360, "height": 360, "uniq_key": "360", "format": "webp"},
)

# 长效 webp 尺寸优先级
WEBP_SIZE_PRIORITY = ("2400", "1080", "720", "480", "360")

# 视频状态码
VIDEO_STATUS_PROCESSING = 20
VIDEO_STATUS_DONE_CODES = frozenset({10, 30})
VIDEO_STATUS_FAILED = 50

# 种子范围
SEED_BASE = 2500000000
SEED_RANGE = 100000000
