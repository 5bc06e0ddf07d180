"""
异常定义
"""
from typing import Optional


class JimengAPIError(Exception):
    """服务基础异常类"""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailure(JimengAPIError):
    """参数不合法，在发起任何网络请求之前抛出"""

    status_code = 400

    def __init__(self, message: str, parameter: Optional[str] = None):
        super().__init__(message)
        self.parameter = parameter


class CredentialMalformed(ValidationFailure):
    """凭证格式错误，无法定位区域标识"""

    status_code = 401

    def __init__(self, message: str = "凭证格式错误，无法解析区域"):
        super().__init__(message, parameter="authorization")


class UploadFailure(JimengAPIError):
    """图片上传失败"""

    status_code = 502

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class SubmissionFailure(JimengAPIError):
    """任务已提交但未返回可用的 history_id，不可自动重试"""

    status_code = 502


class TransportFailure(JimengAPIError):
    """与即梦接口通信失败（非2xx、网络错误或业务错误码）"""

    status_code = 502

    def __init__(self, message: str, status_code: Optional[int] = None, ret: Optional[str] = None):
        super().__init__(message)
        self.http_status = status_code
        self.ret = ret


class RecordNotFound(JimengAPIError):
    """查询的 history_id 不存在"""

    status_code = 404

    def __init__(self, history_id: str):
        super().__init__(f"任务不存在: {history_id}")
        self.history_id = history_id


class CreditsQueryFailed(JimengAPIError):
    """积分查询失败"""

    status_code = 502
