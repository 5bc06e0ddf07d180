"""
积分服务
"""
from typing import Any, Optional

from jimeng_api.core.exceptions import CreditsQueryFailed, JimengAPIError
from jimeng_api.core.logger.logger import get_logger
from jimeng_api.models.generation import Credits
from jimeng_api.service.request_service import RequestService

logger = get_logger(__name__)

CREDIT_PATH = "/commerce/v1/benefits/user_credit"


def _credit_value(credit: dict, key: str) -> float:
    value = credit.get(key) or 0
    return float(value)


class CreditService:
    """账户积分查询"""

    def __init__(self, request_service: Optional[RequestService] = None):
        self.request_service = request_service or RequestService()

    async def get_credit(self, credential: str) -> Credits:
        """
        获取积分明细

        Returns:
            Credits: 赠送、购买、会员积分及总计

        Raises:
            JimengAPIError: 请求失败
            ValueError: 响应缺少 credit 字段或数值不合法
        """
        result: Any = await self.request_service.request(
            "POST",
            CREDIT_PATH,
            credential,
            data={},
        )
        credit = result.get("credit") if isinstance(result, dict) else None
        if not isinstance(credit, dict):
            raise ValueError("响应缺少 credit 字段")

        gift = _credit_value(credit, "gift_credit")
        purchase = _credit_value(credit, "purchase_credit")
        vip = _credit_value(credit, "vip_credit")
        logger.info(f"积分信息: 赠送积分 {gift}, 购买积分 {purchase}, VIP积分 {vip}")
        return Credits(total=gift + purchase + vip, gift=gift, purchase=purchase, vip=vip)

    async def query_credits(self, credential: str) -> Credits:
        """
        查询账户积分

        Raises:
            CreditsQueryFailed: 任何请求或响应解析失败
        """
        logger.info("[异步任务] 查询积分信息")
        try:
            credits = await self.get_credit(credential)
        except (JimengAPIError, ValueError, TypeError) as e:
            message = e.message if isinstance(e, JimengAPIError) else str(e)
            logger.error(f"[异步任务] 积分查询失败: {message}")
            raise CreditsQueryFailed(f"积分查询失败: {message}") from e
        logger.info(f"[异步任务] 积分查询成功 - 总计: {credits.total}")
        return credits
