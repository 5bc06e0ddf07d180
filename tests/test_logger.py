import logging
import sys

import pytest

from jimeng_api.core.logger.logger import get_logger, loguru_logger, setup_logger


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "logs" / "app.log"
    yield path
    loguru_logger.remove()
    loguru_logger.add(sys.stderr)
    logging.basicConfig(handlers=[logging.NullHandler()], force=True)


def test_module_logger_writes_bound_name(log_file):
    setup_logger(log_file=str(log_file), level="DEBUG")
    get_logger("jimeng_api.service.task_service").info("任务已提交")

    content = log_file.read_text(encoding="utf-8")
    assert "jimeng_api.service.task_service" in content
    assert "任务已提交" in content


def test_standard_logging_is_intercepted(log_file):
    setup_logger(log_file=str(log_file), level="INFO")
    logging.getLogger("uvicorn.error").warning("端口已占用")
    logging.getLogger("some.library").info("来自标准 logging")

    content = log_file.read_text(encoding="utf-8")
    assert "[WARNING]" in content
    assert "uvicorn.error - 端口已占用" in content
    assert "来自标准 logging" in content


def test_level_threshold_applies(log_file):
    setup_logger(log_file=str(log_file), level="WARNING")
    get_logger("test").info("不应出现")
    get_logger("test").error("应当出现")

    content = log_file.read_text(encoding="utf-8")
    assert "不应出现" not in content
    assert "应当出现" in content


def test_filter_drops_records(log_file):
    setup_logger(
        log_file=str(log_file),
        filter=lambda record: "secret" not in record["message"],
    )
    get_logger("test").info("secret token")
    get_logger("test").info("public message")

    content = log_file.read_text(encoding="utf-8")
    assert "secret" not in content
    assert "public message" in content
