import random
from typing import List, Optional

from fastapi import HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import HTTP_401_UNAUTHORIZED

from jimeng_api.core.logger.logger import get_logger
from jimeng_api.core.region import mask_token

logger = get_logger(__name__)

# 创建认证处理器
bearer_auth = HTTPBearer(auto_error=False)


def split_tokens(authorization: str) -> List[str]:
    """
    拆分以逗号分隔的多个凭证，去掉空项

    Args:
        authorization: Authorization 头中 Bearer 之后的内容

    Returns:
        List[str]: 凭证列表
    """
    return [token.strip() for token in authorization.split(",") if token.strip()]


async def get_vendor_token(
    bearer: Optional[HTTPAuthorizationCredentials] = Security(bearer_auth),
) -> str:
    """
    从 Authorization: Bearer <tok1>,<tok2> 中随机选取一个即梦凭证

    Raises:
        HTTPException: 未提供凭证时返回401
    """
    tokens = split_tokens(bearer.credentials) if bearer else []
    if not tokens:
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED,
            detail="未提供凭证（Authorization: Bearer <token>）",
        )
    token = random.choice(tokens)
    logger.debug(f"从 {len(tokens)} 个凭证中选取: {mask_token(token)}")
    return token
