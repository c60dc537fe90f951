"""Tests for JWT token creation and password hashing."""
import time
from datetime import timedelta

import pytest
from jose import JWTError, jwt


class TestJWTTokens:
    """Test JWT access token behavior."""

    def test_access_token_decode(self):
        """Access token should be decodable with correct secret."""
        from docsign.api.deps import create_access_token
        from docsign.config import settings
        token = create_access_token(data={"sub": "42", "email": "user@test.com"})
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        assert payload["sub"] == "42"
        assert payload["email"] == "user@test.com"
        assert "exp" in payload

    def test_access_token_expiry(self):
        """Access token should expire after ACCESS_TOKEN_EXPIRE_MINUTES."""
        from docsign.api.deps import create_access_token
        from docsign.config import settings
        token = create_access_token(data={"sub": "1"})
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        # 120 min = 7200 sec
        assert 7000 < (payload["exp"] - time.time()) < 7300

    def test_access_token_custom_expiry(self):
        from docsign.api.deps import create_access_token
        from docsign.config import settings
        token = create_access_token(data={"sub": "1"}, expires_delta=timedelta(minutes=30))
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        assert 1700 < (payload["exp"] - time.time()) < 1900

    def test_wrong_secret_fails(self):
        """Token decoded with wrong secret should fail."""
        from docsign.api.deps import create_access_token
        token = create_access_token(data={"sub": "1"})
        with pytest.raises(JWTError):
            jwt.decode(token, "wrong-secret-key", algorithms=["HS256"])


class TestPasswordHashing:

    def test_hash_and_verify(self):
        from docsign.api.deps import get_password_hash, verify_password
        hashed = get_password_hash("correct horse")
        assert hashed != "correct horse"
        assert verify_password("correct horse", hashed)
        assert not verify_password("wrong horse", hashed)
