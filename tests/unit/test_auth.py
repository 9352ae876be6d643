"""Tests for auth utility functions."""
import pytest
from datetime import timedelta


class TestJWTTokens:
    """Tests for JWT token functions."""

    def test_create_access_token_basic(self):
        """Test creating a basic JWT access token."""
        from app.utils.auth import create_access_token

        token = create_access_token(user_id="emp123")

        assert isinstance(token, str)
        assert len(token) > 0

    def test_verify_access_token_valid(self):
        """Test verifying a valid access token returns the caller context."""
        from app.utils.auth import create_access_token, verify_access_token
        from app.utils.permissions import Role

        token = create_access_token(user_id="emp123")

        context = verify_access_token(token)
        assert context.user_id == "emp123"
        assert context.role == Role.EMPLOYEE

    def test_verify_access_token_carries_role(self):
        from app.utils.auth import create_access_token, verify_access_token
        from app.utils.permissions import Role

        token = create_access_token(user_id="mgr1", role=Role.MANAGER)

        context = verify_access_token(token)
        assert context.role == Role.MANAGER
        assert context.can_approve is True

    def test_verify_access_token_invalid(self):
        """Test verifying an invalid token."""
        from jose import JWTError
        from app.utils.auth import verify_access_token

        with pytest.raises(JWTError):
            verify_access_token("invalid.token.here")

    def test_verify_access_token_expired(self):
        """Test verifying an expired token."""
        from jose import JWTError
        from app.utils.auth import create_access_token, verify_access_token

        token = create_access_token(user_id="emp123", expires_delta=timedelta(seconds=-1))

        with pytest.raises(JWTError):
            verify_access_token(token)

    def test_verify_access_token_unknown_role(self):
        from jose import JWTError, jwt
        from app.config import settings
        from app.utils.auth import verify_access_token

        token = jwt.encode(
            {"sub": "emp123", "role": "OWNER"},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(JWTError, match="unknown role"):
            verify_access_token(token)

    def test_verify_access_token_missing_subject(self):
        from jose import JWTError, jwt
        from app.config import settings
        from app.utils.auth import verify_access_token

        token = jwt.encode({"role": "HR"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)

        with pytest.raises(JWTError, match="sub"):
            verify_access_token(token)

    def test_token_contains_claims(self):
        """Test that token payload contains user id and role."""
        from jose import jwt
        from app.config import settings
        from app.utils.auth import create_access_token
        from app.utils.permissions import Role

        token = create_access_token(user_id="hr1", role=Role.HR)

        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])

        assert payload["sub"] == "hr1"
        assert payload["role"] == "HR"
        assert "exp" in payload
