import hashlib
import json

import httpx
import pytest

from jimeng_api.core.constants import ASSISTANT_ID_CN, ASSISTANT_ID_INTERNATIONAL, PLATFORM_CODE, VERSION_CODE
from jimeng_api.core.cookie_service import CookieService
from jimeng_api.core.exceptions import CredentialMalformed, TransportFailure
from jimeng_api.service.request_service import RequestService


def _service(handler):
    return RequestService(
        cookie_service=CookieService(web_id="7000000000000000001", user_id="user-1"),
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_request_returns_envelope_data(cn_credential):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json={"ret": "0", "errmsg": "success", "data": {"ok": True}})

    result = await _service(handler).request(
        "post", "/mweb/v1/get_history_by_ids", cn_credential, data={"history_ids": ["h1"]}
    )

    assert result == {"ok": True}
    request = seen["request"]
    assert request.method == "POST"
    assert request.url.host == "jimeng.jianying.com"
    assert request.url.path == "/mweb/v1/get_history_by_ids"
    assert request.url.params["aid"] == str(ASSISTANT_ID_CN)
    assert request.url.params["webId"] == "7000000000000000001"
    assert json.loads(request.content) == {"history_ids": ["h1"]}

    cookie = request.headers["cookie"]
    assert "sessionid=a1b2c3d4e5f6session" in cookie
    assert "sid_tt=a1b2c3d4e5f6session" in cookie
    device_time = request.headers["device-time"]
    expected_sign = hashlib.md5(
        f"9e2c|_by_ids|{PLATFORM_CODE}|{VERSION_CODE}|{device_time}||11ac".encode()
    ).hexdigest()
    assert request.headers["sign"] == expected_sign


@pytest.mark.asyncio
async def test_international_credential_routes_to_international_host(us_credential):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json={"ret": "0", "data": {}})

    await _service(handler).request("POST", "/commerce/v1/benefits/user_credit", us_credential, data={})
    request = seen["request"]
    assert request.url.host == "dreamina-api.us.capcut.com"
    assert request.url.params["aid"] == str(ASSISTANT_ID_INTERNATIONAL)
    assert "sessionid=a1b2c3d4e5f6session" in request.headers["cookie"]
    assert "us-a1b2" not in request.headers["cookie"]


@pytest.mark.asyncio
async def test_extra_params_override_common_params(cn_credential):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json={"ret": "0", "data": {}})

    await _service(handler).request("POST", "/x", cn_credential, params={"da_version": "9.9.9"})
    assert seen["request"].url.params["da_version"] == "9.9.9"


@pytest.mark.asyncio
async def test_vendor_error_code_raises(cn_credential):
    def handler(request):
        return httpx.Response(200, json={"ret": "1015", "errmsg": "login error"})

    with pytest.raises(TransportFailure) as exc_info:
        await _service(handler).request("POST", "/x", cn_credential)
    assert exc_info.value.ret == "1015"
    assert "login error" in exc_info.value.message


@pytest.mark.asyncio
async def test_non_2xx_raises(cn_credential):
    def handler(request):
        return httpx.Response(503, text="unavailable")

    with pytest.raises(TransportFailure) as exc_info:
        await _service(handler).request("POST", "/x", cn_credential)
    assert exc_info.value.http_status == 503


@pytest.mark.asyncio
async def test_non_json_body_raises(cn_credential):
    def handler(request):
        return httpx.Response(200, text="<html>")

    with pytest.raises(TransportFailure):
        await _service(handler).request("POST", "/x", cn_credential)


@pytest.mark.asyncio
async def test_network_error_raises(cn_credential):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportFailure):
        await _service(handler).request("POST", "/x", cn_credential)


@pytest.mark.asyncio
async def test_malformed_credential_fails_before_network():
    def handler(request):
        raise AssertionError("不应发出请求")

    with pytest.raises(CredentialMalformed):
        await _service(handler).request("POST", "/x", "zz-token")


def test_check_result_without_envelope_returns_body():
    assert RequestService.check_result({"a": 1}) == {"a": 1}
    assert RequestService.check_result({"ret": 0, "data": None}) == {}


@pytest.mark.asyncio
async def test_fetch_returns_raw_response():
    def handler(request):
        return httpx.Response(200, content=b"bytes")

    response = await _service(handler).fetch("GET", "https://example.com/a.png")
    assert response.content == b"bytes"


@pytest.mark.asyncio
async def test_fetch_non_2xx_raises():
    def handler(request):
        return httpx.Response(404)

    with pytest.raises(TransportFailure) as exc_info:
        await _service(handler).fetch("GET", "https://example.com/a.png")
    assert exc_info.value.http_status == 404


@pytest.mark.asyncio
async def test_download_returns_body_within_limit():
    def handler(request):
        return httpx.Response(200, content=b"12345")

    assert await _service(handler).download("https://example.com/a.png", max_bytes=5) == b"12345"


@pytest.mark.asyncio
async def test_download_rejects_declared_oversize():
    def handler(request):
        return httpx.Response(200, content=b"x" * 64)

    with pytest.raises(TransportFailure):
        await _service(handler).download("https://example.com/a.png", max_bytes=16)


@pytest.mark.asyncio
async def test_download_stops_streaming_past_limit():
    chunks_sent = []

    async def body():
        for _ in range(10):
            chunks_sent.append(1)
            yield b"x" * 8

    def handler(request):
        return httpx.Response(200, content=body())

    with pytest.raises(TransportFailure):
        await _service(handler).download("https://example.com/a.png", max_bytes=20)
    assert len(chunks_sent) < 10


@pytest.mark.asyncio
async def test_download_non_2xx_raises():
    def handler(request):
        return httpx.Response(404)

    with pytest.raises(TransportFailure) as exc_info:
        await _service(handler).download("https://example.com/a.png", max_bytes=16)
    assert exc_info.value.http_status == 404
