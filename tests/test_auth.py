"""
Tests for identity tokens, password hashing and the closed-hours window
"""

import jwt
import pytest
from datetime import datetime, timedelta, timezone

from shop_ledger.api.auth import is_closed_hours
from shop_ledger.auth import IdentityClaim, TokenService
from shop_ledger.errors import AuthError
from shop_ledger.users import Role, User


@pytest.fixture
def user():
    user = User(id=42, username="clerk", name="Clerk", role=Role.STANDARD)
    user.set_password("pass123")
    return user


@pytest.fixture
def tokens():
    return TokenService("test-secret", expiry_hours=24)


class TestTokenService:
    """Test signed identity claims"""

    def test_issue_and_verify(self, tokens, user):
        claim = tokens.verify(tokens.issue(user))
        assert claim == IdentityClaim(id=42, role=Role.STANDARD, name="Clerk")
        assert not claim.is_admin
        assert claim.to_dict() == {"id": 42, "role": "standard-user", "name": "Clerk"}

    def test_expired_token_rejected(self, tokens, user):
        issued = datetime.now(timezone.utc) - timedelta(hours=48)
        with pytest.raises(AuthError, match="Token expired"):
            tokens.verify(tokens.issue(user, now=issued))

    def test_wrong_secret_rejected(self, tokens, user):
        token = TokenService("other-secret").issue(user)
        with pytest.raises(AuthError, match="Invalid token"):
            tokens.verify(token)

    def test_tampered_claim_rejected(self, tokens, user):
        payload = jwt.decode(tokens.issue(user), options={"verify_signature": False})
        payload["role"] = "admin"
        forged = jwt.encode(payload, "guessed-secret", algorithm="HS256")
        with pytest.raises(AuthError):
            tokens.verify(forged)

    def test_garbage_rejected(self, tokens):
        with pytest.raises(AuthError, match="Invalid token"):
            tokens.verify("not-a-token")


class TestPasswords:
    """Test salted password hashes"""

    def test_verify(self, user):
        assert user.verify_password("pass123")
        assert not user.verify_password("pass124")

    def test_fresh_salt_per_password(self, user):
        old_salt, old_hash = user.password_salt, user.password_hash
        user.set_password("pass123")
        assert user.password_salt != old_salt
        assert user.password_hash != old_hash
        assert user.verify_password("pass123")

    def test_no_password_never_verifies(self):
        assert not User(id=1, username="x", name="x").verify_password("")

    def test_public_dict_hides_credentials(self, user):
        public = user.to_public_dict()
        assert "password_hash" not in public
        assert "password_salt" not in public


class TestClosedHours:
    """Test the Friday evening to Saturday evening window"""

    @pytest.mark.parametrize("moment,closed", [
        (datetime(2024, 3, 15, 17, 59), False),  # Friday
        (datetime(2024, 3, 15, 18, 0), True),
        (datetime(2024, 3, 16, 9, 0), True),  # Saturday
        (datetime(2024, 3, 16, 18, 30), True),
        (datetime(2024, 3, 16, 18, 31), False),
        (datetime(2024, 3, 17, 12, 0), False),  # Sunday
        (datetime(2024, 3, 14, 20, 0), False),  # Thursday
    ])
    def test_window(self, moment, closed):
        assert is_closed_hours(moment) is closed
