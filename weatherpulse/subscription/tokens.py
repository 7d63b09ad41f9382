"""
구독 확인/해지 토큰 발급 및 검증
"""

import secrets
from datetime import datetime, timedelta
from typing import Callable, NamedTuple, Optional

from ..config import settings
from ..database import utcnow
from ..errors import ExpiredToken, InvalidToken

# 해지 토큰처럼 만료되지 않는 토큰의 만료 시각
NO_EXPIRY = datetime(9999, 12, 31, 23, 59, 59)

TOKEN_BYTES = 32  # 256 bit


class IssuedToken(NamedTuple):
    token: str
    expiry: datetime


class TokenIssuer:
    """토큰 발급기"""

    def __init__(self, ttl_seconds: int = None, clock: Callable[[], datetime] = utcnow):
        if ttl_seconds is None:
            ttl_seconds = settings.token_expiry_seconds
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    def issue(self, no_expiry: bool = False) -> IssuedToken:
        """
        새 토큰 발급

        Args:
            no_expiry: True 면 만료 시각을 NO_EXPIRY 로 설정 (해지 링크용)

        Returns:
            (token, expiry)
        """
        token = secrets.token_hex(TOKEN_BYTES)
        expiry = NO_EXPIRY if no_expiry else self._clock() + self.ttl
        return IssuedToken(token, expiry)

    def validate(
        self,
        token: Optional[str],
        expiry: Optional[datetime],
        is_unsubscribe_token: bool = False
    ) -> None:
        """
        토큰 검증. 해지 토큰은 만료를 확인하지 않는다.

        Raises:
            InvalidToken: 빈 토큰
            ExpiredToken: 만료된 확인 토큰
        """
        if not token:
            raise InvalidToken()

        if is_unsubscribe_token:
            return

        if expiry is None or self._clock() > expiry:
            raise ExpiredToken()
