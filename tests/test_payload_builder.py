import json

import pytest

from jimeng_api.core.constants import ASSISTANT_ID_CN, ASSISTANT_ID_INTERNATIONAL, DRAFT_VERSION, SEED_BASE, SEED_RANGE
from jimeng_api.models.generation import GenerateMode
from jimeng_api.service.model_service import ModelService
from jimeng_api.service.payload_builder import (
    build_blend_ability_list,
    build_core_param,
    build_draft_content,
    build_frame_image,
    build_generate_request,
    build_metrics_ability_list,
    build_metrics_extra,
    build_prompt_placeholder_list,
    build_video_generate_request,
    get_video_benefit_type,
    quantize_video_duration,
    supports_video_resolution,
)

VGFM_30 = "dreamina_ic_generate_video_model_vgfm_3.0"
VGFM_30_PRO = "dreamina_ic_generate_video_model_vgfm_3.0_pro"
VGFM_30_FAST = "dreamina_ic_generate_video_model_vgfm_3.0_fast"
VGFM_35_PRO = "dreamina_ic_generate_video_model_vgfm_3.5_pro"
VEO3 = "dreamina_veo3_generate_video"
VEO31 = "dreamina_veo3.1_generate_video"
SORA2 = "dreamina_sora2_generate_video"


@pytest.fixture
def resolution(cn_region):
    return ModelService().resolve_resolution("jimeng-4.5", cn_region, "2k", "16:9")


def _core(resolution, **kwargs):
    params = dict(user_model="jimeng-4.5", model="high_aigc_t2i_v45", prompt="a cat", resolution=resolution)
    params.update(kwargs)
    return build_core_param(**params)


def test_seed_is_drawn_from_documented_range(resolution):
    for _ in range(50):
        seed = _core(resolution).seed
        assert SEED_BASE <= seed < SEED_BASE + SEED_RANGE


def test_injected_seed_is_kept(resolution):
    assert _core(resolution, seed=42).seed == 42


def test_img2img_prompt_gets_one_placeholder_per_image(resolution):
    core = _core(resolution, mode=GenerateMode.IMG2IMG, image_count=3)
    assert core.prompt == "######a cat"
    assert _core(resolution).prompt == "a cat"


def test_generate_draft_has_single_component(resolution):
    draft = build_draft_content(component_id="comp-1", core_param=_core(resolution, seed=7))
    assert draft["main_component_id"] == "comp-1"
    assert draft["version"] == DRAFT_VERSION
    component = draft["component_list"][0]
    assert component["type"] == "image_base_component"
    assert component["generate_type"] == "generate"
    core_param = component["abilities"]["generate"]["core_param"]
    assert core_param["seed"] == 7
    assert core_param["large_image_info"]["width"] == 2560
    assert core_param["large_image_info"]["resolution_type"] == "2k"
    assert core_param["image_ratio"] == 3
    assert "blend" not in component["abilities"]


def test_blend_draft_keeps_upload_order(resolution):
    asset_ids = ["tos-a", "tos-b", "tos-c"]
    core = _core(resolution, mode=GenerateMode.IMG2IMG, image_count=len(asset_ids))
    draft = build_draft_content(
        component_id="comp-2",
        core_param=core,
        ability_list=build_blend_ability_list(asset_ids, 0.5),
        prompt_placeholder_list=build_prompt_placeholder_list(len(asset_ids)),
    )
    blend = draft["component_list"][0]["abilities"]["blend"]
    assert draft["component_list"][0]["generate_type"] == "blend"
    assert [ability["image_uri_list"][0] for ability in blend["ability_list"]] == asset_ids
    assert [ability["image_list"][0]["uri"] for ability in blend["ability_list"]] == asset_ids
    assert [p["ability_index"] for p in blend["prompt_placeholder_info_list"]] == [0, 1, 2]
    assert blend["postedit_param"]["generate_type"] == 0
    assert blend["postedit_param"]["type"] == ""


def test_metrics_extra_is_json_with_nested_scene_options():
    metrics = json.loads(build_metrics_extra(model="high_aigc_t2i_v45", submit_id="sub-1", resolution_type="4k"))
    assert metrics["generateId"] == "sub-1"
    assert metrics["isRegenerate"] is False
    scene = json.loads(metrics["sceneOptions"])[0]
    assert scene["resolutionType"] == "4k"
    assert scene["modelReqKey"] == "high_aigc_t2i_v45"
    assert scene["abilityList"] == []


def test_generate_request_envelope(resolution, cn_region, us_region):
    draft = build_draft_content(component_id="c", core_param=_core(resolution))
    request = build_generate_request(
        model="high_aigc_t2i_v45", region=cn_region, submit_id="s", draft_content=draft, metrics_extra="{}"
    )
    assert request.data["extend"]["root_model"] == "high_aigc_t2i_v45"
    assert request.data["submit_id"] == "s"
    assert request.data["http_common_info"]["aid"] == ASSISTANT_ID_CN
    assert json.loads(request.data["draft_content"])["main_component_id"] == "c"
    assert request.params["da_version"] == DRAFT_VERSION

    international = build_generate_request(
        model="m", region=us_region, submit_id="s", draft_content=draft, metrics_extra="{}"
    )
    assert international.data["http_common_info"]["aid"] == ASSISTANT_ID_INTERNATIONAL


@pytest.mark.parametrize(
    "model, requested, expected",
    [
        (VEO3, 10, 8),
        (VEO31, 4, 8),
        (SORA2, 8, 8),
        (SORA2, 12, 12),
        (SORA2, 10, 4),
        (VGFM_35_PRO, 10, 10),
        (VGFM_35_PRO, 12, 12),
        (VGFM_35_PRO, 8, 5),
        (VGFM_30, 10, 10),
        (VGFM_30, 7, 5),
        (VGFM_30, 12, 5),
    ],
)
def test_duration_quantization(model, requested, expected):
    assert quantize_video_duration(model, requested) == (expected, expected * 1000)


@pytest.mark.parametrize(
    "model, supported",
    [(VGFM_30, True), (VGFM_30_FAST, True), (VGFM_30_PRO, False), (VGFM_35_PRO, False), (VEO3, False)],
)
def test_video_resolution_support(model, supported):
    assert supports_video_resolution(model) is supported


@pytest.mark.parametrize(
    "model, benefit",
    [
        (VEO31, "generate_video_veo3.1"),
        (VEO3, "generate_video_veo3"),
        (SORA2, "generate_video_sora2"),
        (VGFM_35_PRO, "dreamina_video_seedance_15_pro"),
        ("dreamina_ic_generate_video_model_vgfm_3.5", "dreamina_video_seedance_15"),
        (VGFM_30, "basic_video_operation_vgfm_v_three"),
    ],
)
def test_video_benefit_type(model, benefit):
    assert get_video_benefit_type(model) == benefit


def test_frame_image_descriptor():
    frame = build_frame_image("tos-first")
    assert frame["uri"] == frame["image_uri"] == "tos-first"
    assert frame["type"] == "image"
    assert frame["source_from"] == "upload"


def _video_input(request):
    draft = json.loads(request.data["draft_content"])
    params = draft["component_list"][0]["abilities"]["gen_video"]["text_to_video_params"]
    return params, params["video_gen_inputs"][0]


def test_video_request_with_resolution_and_frames(cn_region):
    request = build_video_generate_request(
        model=VGFM_30,
        prompt="sunset",
        region=cn_region,
        ratio="16:9",
        resolution="1080p",
        duration=10,
        first_frame_asset="tos-1",
        end_frame_asset="tos-2",
        seed=99,
    )
    params, video_input = _video_input(request)
    assert video_input["duration_ms"] == 10000
    assert video_input["resolution"] == "1080p"
    assert video_input["first_frame_image"]["uri"] == "tos-1"
    assert video_input["end_frame_image"]["uri"] == "tos-2"
    assert video_input["video_mode"] == 2
    assert video_input["fps"] == 24
    assert params["video_aspect_ratio"] == "16:9"
    assert params["seed"] == 99
    assert params["model_req_key"] == VGFM_30

    metrics = json.loads(request.data["metrics_extra"])
    assert metrics["functionMode"] == "first_last_frames"
    scene = json.loads(metrics["sceneOptions"])[0]
    assert scene["resolution"] == "1080p"
    assert scene["reportParams"]["extraVipFunctionKey"] == f"{VGFM_30}-1080p"
    assert request.data["extend"]["m_video_commerce_info"]["benefit_type"] == "basic_video_operation_vgfm_v_three"


def test_video_request_omits_resolution_for_pro_models(us_region):
    request = build_video_generate_request(model=VGFM_35_PRO, prompt="p", region=us_region, resolution="1080p")
    _, video_input = _video_input(request)
    assert "resolution" not in video_input
    assert "first_frame_image" not in video_input
    scene = json.loads(json.loads(request.data["metrics_extra"])["sceneOptions"])[0]
    assert "resolution" not in scene
    assert scene["reportParams"]["extraVipFunctionKey"] == VGFM_35_PRO
    assert request.data["http_common_info"]["aid"] == ASSISTANT_ID_INTERNATIONAL


def test_metrics_ability_list_uses_dreamina_blob_origin():
    abilities = build_metrics_ability_list(2, 0.7)
    assert len(abilities) == 2
    assert all(a["abilityName"] == "byte_edit" and a["strength"] == 0.7 for a in abilities)
    assert all(a["source"]["imageUrl"].startswith("blob:https://dreamina.capcut.com/") for a in abilities)
    assert abilities[0]["source"]["imageUrl"] != abilities[1]["source"]["imageUrl"]
