from unittest.mock import AsyncMock, Mock

import pytest

from jimeng_api.core.region import parse_region
from jimeng_api.service.request_service import RequestService

CN_TOKEN = "a1b2c3d4e5f6session"
US_TOKEN = "us-a1b2c3d4e5f6session"


@pytest.fixture
def cn_credential():
    return CN_TOKEN


@pytest.fixture
def us_credential():
    return US_TOKEN


@pytest.fixture
def cn_region():
    return parse_region(CN_TOKEN)


@pytest.fixture
def us_region():
    return parse_region(US_TOKEN)


@pytest.fixture
def request_service():
    """只模拟网络调用的请求服务"""
    service = Mock(spec=RequestService)
    service.request = AsyncMock()
    service.fetch = AsyncMock()
    service.download = AsyncMock()
    return service
