"""
토큰 발급/검증 테스트
"""

from datetime import timedelta

import pytest

from weatherpulse.errors import ExpiredToken, InvalidToken
from weatherpulse.subscription import NO_EXPIRY, TokenIssuer


class TestTokenIssuer:
    """TokenIssuer 테스트"""

    def test_token_has_256_bits(self, tokens):
        issued = tokens.issue()
        assert len(issued.token) == 64
        int(issued.token, 16)  # hex 문자열

    def test_tokens_are_unique(self, tokens):
        assert len({tokens.issue().token for _ in range(100)}) == 100

    def test_expiring_token(self, tokens, clock):
        issued = tokens.issue()
        assert issued.expiry == clock.now + timedelta(seconds=3600)

    def test_non_expiring_token(self, tokens):
        assert tokens.issue(no_expiry=True).expiry == NO_EXPIRY

    def test_default_ttl_from_settings(self, clock):
        issuer = TokenIssuer(clock=clock)
        assert issuer.issue().expiry == clock.now + timedelta(seconds=86400)

    def test_zero_ttl_is_respected(self, clock):
        issuer = TokenIssuer(ttl_seconds=0, clock=clock)
        issued = issuer.issue()

        assert issued.expiry == clock.now
        clock.advance(seconds=1)
        with pytest.raises(ExpiredToken):
            issuer.validate(issued.token, issued.expiry)

    @pytest.mark.parametrize("is_unsubscribe", [False, True])
    def test_empty_token_is_invalid(self, tokens, clock, is_unsubscribe):
        with pytest.raises(InvalidToken):
            tokens.validate("", clock.now + timedelta(hours=1), is_unsubscribe_token=is_unsubscribe)
        with pytest.raises(InvalidToken):
            tokens.validate(None, NO_EXPIRY, is_unsubscribe_token=is_unsubscribe)

    def test_expired_token(self, tokens, clock):
        with pytest.raises(ExpiredToken):
            tokens.validate("abc", clock.now - timedelta(seconds=1))

    def test_unsubscribe_token_ignores_expiry(self, tokens, clock):
        tokens.validate("abc", clock.now - timedelta(days=30), is_unsubscribe_token=True)

    def test_fresh_token_is_valid(self, tokens):
        issued = tokens.issue()
        tokens.validate(issued.token, issued.expiry)

    def test_token_expires_after_ttl(self, tokens, clock):
        issued = tokens.issue()
        clock.advance(seconds=3601)
        with pytest.raises(ExpiredToken):
            tokens.validate(issued.token, issued.expiry)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
