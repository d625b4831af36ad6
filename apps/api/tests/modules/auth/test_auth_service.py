"""
Unit tests for the auth service layer.

These tests cover:
- Registration and duplicate emails
- Login failures and inactive accounts
- Password change
- The password reset request/confirm flow
"""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from app.core.errors import AccountInactiveError, DuplicateEntryError, InvalidCredentialsError
from app.core.security import decode_token, hash_password
from app.modules.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    PasswordResetConfirm,
    RegisterRequest,
)
from app.modules.auth.service import (
    IncorrectPasswordError,
    InvalidResetTokenError,
    _hash_token,
    change_password,
    confirm_password_reset,
    login,
    register,
    request_password_reset,
)
from app.modules.users.models import UserRole

PASSWORD = "Str0ng!Pass"


def _user(**overrides):
    values = {
        "id": uuid4(),
        "email": "asha@bmiet.edu",
        "password_hash": hash_password(PASSWORD),
        "role": UserRole.STUDENT,
        "is_active": True,
        "full_name": "Asha Verma",
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def users():
    with patch("app.modules.auth.service.UserRepository") as repo:
        for name in (
            "create",
            "get_by_id",
            "get_by_email",
            "email_exists",
            "touch_last_login",
            "set_password_hash",
        ):
            setattr(repo, name, AsyncMock())
        yield repo


@pytest.fixture
def tokens():
    with patch("app.modules.auth.service.repository") as repo:
        repo.create_reset_token = AsyncMock()
        repo.get_by_token_hash = AsyncMock()
        repo.mark_used = AsyncMock()
        repo.delete_unused_for_user = AsyncMock()
        yield repo


class TestHashToken:
    def test_hash_is_sha256_hex(self):
        assert len(_hash_token("token")) == 64

    def test_hash_is_deterministic(self):
        assert _hash_token("a") == _hash_token("a")
        assert _hash_token("a") != _hash_token("b")


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_issues_tokens(self, mock_db, users):
        user = _user()
        users.email_exists.return_value = False
        users.create.return_value = user
        data = RegisterRequest.model_validate(
            {
                "email": "asha@bmiet.edu",
                "password": PASSWORD,
                "profile": {"firstName": "Asha", "lastName": "Verma"},
            }
        )

        issued = await register(mock_db, data)

        assert issued.user is user
        assert decode_token(issued.access_token)["sub"] == str(user.id)
        assert users.create.call_args.kwargs["role"] == UserRole.STUDENT
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_duplicate_email(self, mock_db, users):
        users.email_exists.return_value = True
        data = RegisterRequest.model_validate(
            {
                "email": "asha@bmiet.edu",
                "password": PASSWORD,
                "profile": {"firstName": "Asha", "lastName": "Verma"},
            }
        )

        with pytest.raises(DuplicateEntryError) as exc_info:
            await register(mock_db, data)

        assert exc_info.value.field == "email"
        users.create.assert_not_called()


class TestLogin:
    @pytest.mark.asyncio
    async def test_unknown_email(self, mock_db, users):
        users.get_by_email.return_value = None

        with pytest.raises(InvalidCredentialsError):
            await login(mock_db, LoginRequest(email="nobody@bmiet.edu", password=PASSWORD))

    @pytest.mark.asyncio
    async def test_wrong_password(self, mock_db, users):
        users.get_by_email.return_value = _user()

        with pytest.raises(InvalidCredentialsError):
            await login(mock_db, LoginRequest(email="asha@bmiet.edu", password="Wrong!Pass1"))

    @pytest.mark.asyncio
    async def test_inactive_account(self, mock_db, users):
        users.get_by_email.return_value = _user(is_active=False)

        with pytest.raises(AccountInactiveError):
            await login(mock_db, LoginRequest(email="asha@bmiet.edu", password=PASSWORD))

    @pytest.mark.asyncio
    async def test_success(self, mock_db, users):
        user = _user()
        users.get_by_email.return_value = user

        issued = await login(mock_db, LoginRequest(email="asha@bmiet.edu", password=PASSWORD))

        claims = decode_token(issued.access_token)
        assert claims["role"] == "student"
        users.touch_last_login.assert_awaited_once()


class TestChangePassword:
    @pytest.mark.asyncio
    async def test_incorrect_current_password(self, mock_db, users, tokens, student):
        users.get_by_id.return_value = _user(id=student.id)
        data = ChangePasswordRequest(current_password="Wrong!Pass1", new_password="N3w!Passw0rd")

        with pytest.raises(IncorrectPasswordError):
            await change_password(mock_db, student, data)

        users.set_password_hash.assert_not_called()

    @pytest.mark.asyncio
    async def test_changes_hash(self, mock_db, users, tokens, student):
        user = _user(id=student.id)
        users.get_by_id.return_value = user
        data = ChangePasswordRequest(current_password=PASSWORD, new_password="N3w!Passw0rd")

        await change_password(mock_db, student, data)

        users.set_password_hash.assert_awaited_once()
        tokens.delete_unused_for_user.assert_awaited_once_with(mock_db, user.id)
        mock_db.commit.assert_awaited_once()


class TestPasswordReset:
    @pytest.mark.asyncio
    async def test_unknown_email_is_silent(self, mock_db, users, tokens):
        users.get_by_email.return_value = None

        with patch("app.modules.auth.service.send_password_reset", AsyncMock()) as send:
            await request_password_reset(mock_db, "nobody@bmiet.edu")

        tokens.create_reset_token.assert_not_called()
        send.assert_not_called()

    @pytest.mark.asyncio
    async def test_stores_hash_and_emails_raw_token(self, mock_db, users, tokens):
        user = _user()
        users.get_by_email.return_value = user

        with patch("app.modules.auth.service.send_password_reset", AsyncMock()) as send:
            await request_password_reset(mock_db, user.email)

        raw_token = send.call_args.args[2]
        stored_hash = tokens.create_reset_token.call_args.args[2]
        assert stored_hash == _hash_token(raw_token)
        assert stored_hash != raw_token

    @pytest.mark.asyncio
    async def test_email_failure_is_not_raised(self, mock_db, users, tokens):
        users.get_by_email.return_value = _user()

        with patch(
            "app.modules.auth.service.send_password_reset",
            AsyncMock(side_effect=RuntimeError("mail down")),
        ):
            await request_password_reset(mock_db, "asha@bmiet.edu")

        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_confirm_with_valid_token(self, mock_db, users, tokens):
        user = _user()
        reset_token = SimpleNamespace(
            user_id=user.id,
            used_at=None,
            expires_at=datetime.now(UTC) + timedelta(minutes=30),
        )
        tokens.get_by_token_hash.return_value = reset_token
        users.get_by_id.return_value = user

        await confirm_password_reset(
            mock_db, PasswordResetConfirm(token="t" * 43, new_password="N3w!Passw0rd")
        )

        users.set_password_hash.assert_awaited_once()
        tokens.mark_used.assert_awaited_once_with(mock_db, reset_token)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "used_at, expires_in",
        [
            (None, timedelta(minutes=-1)),
            (datetime.now(UTC), timedelta(minutes=30)),
        ],
    )
    async def test_confirm_rejects_expired_or_used(
        self, mock_db, users, tokens, used_at, expires_in
    ):
        tokens.get_by_token_hash.return_value = SimpleNamespace(
            user_id=uuid4(), used_at=used_at, expires_at=datetime.now(UTC) + expires_in
        )

        with pytest.raises(InvalidResetTokenError):
            await confirm_password_reset(
                mock_db, PasswordResetConfirm(token="t" * 43, new_password="N3w!Passw0rd")
            )

        users.set_password_hash.assert_not_called()

    @pytest.mark.asyncio
    async def test_confirm_unknown_token(self, mock_db, users, tokens):
        tokens.get_by_token_hash.return_value = None

        with pytest.raises(InvalidResetTokenError):
            await confirm_password_reset(
                mock_db, PasswordResetConfirm(token="t" * 43, new_password="N3w!Passw0rd")
            )
