import json
from unittest.mock import AsyncMock

import pytest

from jimeng_api.core.exceptions import SubmissionFailure, UploadFailure, ValidationFailure
from jimeng_api.models.generation import GenerateRequest
from jimeng_api.models.task import ImageTaskOptions, VideoTaskOptions
from jimeng_api.service.model_service import ModelService
from jimeng_api.service.task_service import GENERATE_PATH, TaskService
from jimeng_api.service.upload_service import UploadService

SUBMITTED = {"aigc_data": {"history_record_id": "history-1"}}


@pytest.fixture
def upload_service(request_service):
    service = UploadService(request_service, max_size=10)

    async def upload_buffer(image_bytes, credential, region=None):
        if image_bytes.startswith(b"bad"):
            raise UploadFailure("上传失败")
        return f"tos-{image_bytes.decode()}"

    service.upload_buffer = AsyncMock(side_effect=upload_buffer)
    return service


@pytest.fixture
def task_service(request_service, upload_service):
    return TaskService(request_service, upload_service, ModelService())


def _submitted_data(request_service):
    call = request_service.request.await_args
    assert call.args[:2] == ("POST", GENERATE_PATH)
    return call.kwargs["data"]


def _draft(request_service):
    return json.loads(_submitted_data(request_service)["draft_content"])


@pytest.mark.asyncio
async def test_submit_extracts_history_id(task_service, request_service, cn_credential):
    request_service.request.return_value = SUBMITTED
    history_id = await task_service.submit(GenerateRequest(params={"a": 1}, data={"b": 2}), cn_credential)
    assert history_id == "history-1"
    call = request_service.request.await_args
    assert call.kwargs["params"] == {"a": 1}
    assert call.kwargs["data"] == {"b": 2}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [{}, {"aigc_data": None}, {"aigc_data": {}}, {"aigc_data": {"history_record_id": ""}}, None],
)
async def test_missing_history_id_is_submission_failure(task_service, request_service, cn_credential, response):
    request_service.request.return_value = response
    with pytest.raises(SubmissionFailure):
        await task_service.submit(GenerateRequest(), cn_credential)
    assert request_service.request.await_count == 1


@pytest.mark.asyncio
async def test_image_generation_task(task_service, request_service, cn_credential):
    request_service.request.return_value = SUBMITTED
    history_id = await task_service.create_image_generation_task(
        "jimeng-4.0", "a cat", ImageTaskOptions(ratio="9:16", resolution="4k"), cn_credential
    )
    assert history_id == "history-1"
    data = _submitted_data(request_service)
    assert data["extend"]["root_model"] == "high_aigc_t2i_v40"
    core_param = _draft(request_service)["component_list"][0]["abilities"]["generate"]["core_param"]
    assert core_param["prompt"] == "a cat"
    assert core_param["large_image_info"]["resolution_type"] == "4k"
    assert (core_param["large_image_info"]["width"], core_param["large_image_info"]["height"]) == (3040, 5504)


@pytest.mark.asyncio
async def test_image_generation_defaults(task_service, request_service, us_credential):
    request_service.request.return_value = SUBMITTED
    await task_service.create_image_generation_task(None, "a dog", None, us_credential)
    core_param = _draft(request_service)["component_list"][0]["abilities"]["generate"]["core_param"]
    assert core_param["model"] == "high_aigc_t2i_v45"
    assert core_param["sample_strength"] == 0.5
    assert core_param["large_image_info"]["resolution_type"] == "2k"
    assert core_param["image_ratio"] == 1


@pytest.mark.asyncio
async def test_image_generation_rejects_bad_ratio_without_network(task_service, request_service, cn_credential):
    with pytest.raises(ValidationFailure):
        await task_service.create_image_generation_task(
            "jimeng-4.5", "a cat", ImageTaskOptions(ratio="7:5"), cn_credential
        )
    request_service.request.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("count", [0, 11])
async def test_composition_bounds_checked_before_upload(
    task_service, request_service, upload_service, cn_credential, count
):
    images = [f"img{i}".encode() for i in range(count)]
    with pytest.raises(ValidationFailure):
        await task_service.create_image_composition_task("jimeng-4.5", "mix", images, None, cn_credential)
    upload_service.upload_buffer.assert_not_called()
    request_service.request.assert_not_called()


@pytest.mark.asyncio
async def test_composition_task_keeps_upload_order(task_service, request_service, cn_credential):
    request_service.request.return_value = SUBMITTED
    history_id = await task_service.create_image_composition_task(
        "jimeng-4.5", "mix them", [b"one", b"two"], ImageTaskOptions(sample_strength=0.8), cn_credential
    )
    assert history_id == "history-1"
    component = _draft(request_service)["component_list"][0]
    assert component["generate_type"] == "blend"
    blend = component["abilities"]["blend"]
    assert blend["core_param"]["prompt"] == "####mix them"
    assert [a["image_uri_list"][0] for a in blend["ability_list"]] == ["tos-one", "tos-two"]
    assert all(a["strength"] == 0.8 for a in blend["ability_list"])
    assert len(blend["prompt_placeholder_info_list"]) == 2


@pytest.mark.asyncio
async def test_composition_upload_failure_aborts_task(task_service, request_service, cn_credential):
    with pytest.raises(UploadFailure):
        await task_service.create_image_composition_task(
            "jimeng-4.5", "mix", [b"one", b"bad-two", b"three"], None, cn_credential
        )
    request_service.request.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("duration", [0, 3, 6, 7, 15])
async def test_video_duration_must_be_allowed(task_service, request_service, cn_credential, duration):
    with pytest.raises(ValidationFailure) as exc_info:
        await task_service.create_video_generation_task(
            "jimeng-video-3.0", "waves", VideoTaskOptions(duration=duration), cn_credential
        )
    assert exc_info.value.parameter == "duration"
    request_service.request.assert_not_called()


def _video_input(request_service):
    draft = _draft(request_service)
    params = draft["component_list"][0]["abilities"]["gen_video"]["text_to_video_params"]
    return params["video_gen_inputs"][0]


@pytest.mark.asyncio
async def test_text_to_video_task(task_service, request_service, upload_service, cn_credential):
    request_service.request.return_value = SUBMITTED
    history_id = await task_service.create_video_generation_task(
        "jimeng-video-veo3", "waves", VideoTaskOptions(duration=10), cn_credential
    )
    assert history_id == "history-1"
    video_input = _video_input(request_service)
    assert video_input["duration_ms"] == 8000
    assert "first_frame_image" not in video_input
    upload_service.upload_buffer.assert_not_called()


@pytest.mark.asyncio
async def test_video_end_frame_failure_is_tolerated(task_service, request_service, cn_credential):
    request_service.request.return_value = SUBMITTED
    await task_service.create_video_generation_task(
        "jimeng-video-3.0", "waves", VideoTaskOptions(files=[b"first", b"bad-end"]), cn_credential
    )
    video_input = _video_input(request_service)
    assert video_input["first_frame_image"]["uri"] == "tos-first"
    assert "end_frame_image" not in video_input
    assert video_input["resolution"] == "720p"


@pytest.mark.asyncio
async def test_video_first_frame_failure_aborts(task_service, request_service, cn_credential):
    with pytest.raises(UploadFailure):
        await task_service.create_video_generation_task(
            "jimeng-video-3.0", "waves", VideoTaskOptions(files=[b"bad-first", b"end"]), cn_credential
        )
    request_service.request.assert_not_called()


@pytest.mark.asyncio
async def test_video_files_take_precedence_over_paths(task_service, request_service, upload_service, cn_credential):
    request_service.request.return_value = SUBMITTED
    await task_service.create_video_generation_task(
        "jimeng-video-3.0",
        "waves",
        VideoTaskOptions(files=[b"uploaded"], file_paths=["https://example.com/ignored.png"]),
        cn_credential,
    )
    request_service.download.assert_not_called()
    assert _video_input(request_service)["first_frame_image"]["uri"] == "tos-uploaded"
    assert upload_service.upload_buffer.await_count == 1


@pytest.mark.asyncio
async def test_video_too_many_images(task_service, request_service, cn_credential):
    with pytest.raises(ValidationFailure):
        await task_service.create_video_generation_task(
            "jimeng-video-3.0", "waves", VideoTaskOptions(files=[b"a", b"b", b"c"]), cn_credential
        )
    request_service.request.assert_not_called()
