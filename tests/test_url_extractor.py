from jimeng_api.utils.url_extractor import (
    HQ_VIDEO_EXTRACTORS,
    extract_all_image_urls,
    extract_image_url,
    extract_image_url_info,
    extract_image_urls,
    extract_video_url,
    run_extractors,
    unescape_url,
)

ESCAPED = "https://p3.example.com/img.png?a=1\\u0026b=2"


def _image_item(png=None, cover=None, cover_map=None):
    item = {}
    if png is not None:
        item["image"] = {"large_images": [{"image_url": png}]}
    common_attr = {}
    if cover is not None:
        common_attr["cover_url"] = cover
    if cover_map is not None:
        common_attr["cover_url_map"] = cover_map
    if common_attr:
        item["common_attr"] = common_attr
    return item


def test_unescape_is_idempotent():
    once = unescape_url(ESCAPED)
    assert once == "https://p3.example.com/img.png?a=1&b=2"
    assert unescape_url(once) == once
    assert unescape_url(None) is None


def test_extract_image_url_uses_large_images_only():
    assert extract_image_url(_image_item(png=ESCAPED)) == "https://p3.example.com/img.png?a=1&b=2"
    assert extract_image_url(_image_item(cover="https://cover")) is None


def test_extract_image_urls_skips_missing_items():
    items = [_image_item(png="https://a"), _image_item(), _image_item(png="https://c")]
    assert extract_image_urls(items) == ["https://a", "https://c"]


def test_long_webp_prefers_largest_normal_size():
    info = extract_image_url_info(_image_item(cover_map={"720": "a", "360": "b"}))
    assert info.webp_long == "a"
    assert info.webp_sizes == {"720": "a", "360": "b"}


def test_long_webp_ignores_smart_crop_keys():
    info = extract_image_url_info(_image_item(cover_map={"smart_crop-w:720-h:720": "crop"}))
    assert info.webp_long is None
    assert info.webp_sizes == {"smart_crop-w:720-h:720": "crop"}


def test_image_url_info_unescapes_every_flavor():
    info = extract_image_url_info(
        _image_item(png=ESCAPED, cover=ESCAPED, cover_map={"2400": ESCAPED, "1080": "x", "empty": ""})
    )
    assert "\\u0026" not in info.png
    assert "\\u0026" not in info.webp
    assert info.webp_long == info.webp_sizes["2400"]
    assert "\\u0026" not in info.webp_long
    assert "empty" not in info.webp_sizes


def test_extract_all_image_urls_keeps_one_entry_per_item():
    infos = extract_all_image_urls([_image_item(png="https://a"), {}])
    assert len(infos) == 2
    assert infos[1].png is None
    assert infos[1].webp_sizes == {}


def test_video_field_priority():
    item = {"video": {"play_url": "https://play", "download_url": "https://download", "url": "https://url"}}
    assert extract_video_url(item) == "https://play"
    item["video"]["transcoded_video"] = {"origin": {"video_url": "https://origin"}}
    assert extract_video_url(item) == "https://origin"
    assert extract_video_url({"video": {"url": "https://url"}}) == "https://url"
    assert extract_video_url({}) is None


def test_hq_structured_fields_prefer_download_over_play():
    result = {"item_list": [{"video": {"play_url": "https://play", "download_url": "https://download"}}]}
    assert run_extractors(HQ_VIDEO_EXTRACTORS, result) == "https://download"


def test_hq_falls_back_to_local_item_list():
    result = {"local_item_list": [{"video": {"url": "https://local"}}]}
    assert run_extractors(HQ_VIDEO_EXTRACTORS, result) == "https://local"


def test_hq_regex_chain_order():
    result = {
        "item_list": [],
        "extra": [
            "https://v9-other.vlabvod.com/any.mp4",
            "https://v3-cdn.jimeng.com/generic.mp4",
            "https://v26-dreamnia.jimeng.com/best.mp4",
        ],
    }
    assert run_extractors(HQ_VIDEO_EXTRACTORS, result) == "https://v26-dreamnia.jimeng.com/best.mp4"

    result["extra"].pop()
    assert run_extractors(HQ_VIDEO_EXTRACTORS, result) == "https://v3-cdn.jimeng.com/generic.mp4"

    result["extra"].pop()
    assert run_extractors(HQ_VIDEO_EXTRACTORS, result) == "https://v9-other.vlabvod.com/any.mp4"

    result["extra"].pop()
    assert run_extractors(HQ_VIDEO_EXTRACTORS, result) is None


def test_hq_item_list_must_be_a_list():
    result = {"item_list": {"item-1": {"video": {"play_url": "https://play"}}}}
    assert run_extractors(HQ_VIDEO_EXTRACTORS, result) is None

    result = {"item_list": {"item-1": {"url": "https://v26-dreamnia.jimeng.com/hq.mp4"}}}
    assert run_extractors(HQ_VIDEO_EXTRACTORS, result) == "https://v26-dreamnia.jimeng.com/hq.mp4"
