"""
服务模块
"""
from .request_service import RequestService
from .model_service import model_service
from .upload_service import UploadService
from .task_service import TaskService
from .status_service import StatusService
from .credit_service import CreditService

request_service = RequestService()
upload_service = UploadService(request_service)
task_service = TaskService(request_service, upload_service, model_service)
status_service = StatusService(request_service)
credit_service = CreditService(request_service)

__all__ = [
    'request_service',
    'model_service',
    'upload_service',
    'task_service',
    'status_service',
    'credit_service'
]
