"""
Account Tests
Registration, bcrypt password storage and JWT login tokens.
"""
import jwt
import pytest
from sqlalchemy import select

from ecoduino.exceptions import EmailAlreadyRegistered, InvalidCredentials, ValidationError
from ecoduino.models import User


class TestRegistration:

    @pytest.mark.asyncio
    async def test_password_is_stored_hashed(self, services, db):
        user_id = await services.accounts.register("Ana", "ana@example.com", "s3cret-pass")

        async with db.transaction() as session:
            stored = (await session.execute(select(User).where(User.id == user_id))).scalar_one()

        assert stored.password_hash != "s3cret-pass"
        assert stored.password_hash.startswith("$2")

    @pytest.mark.asyncio
    async def test_duplicate_email(self, services):
        await services.accounts.register("Ana", "ana@example.com", "pw-one")

        with pytest.raises(EmailAlreadyRegistered) as exc_info:
            await services.accounts.register("Other", "ANA@example.com", "pw-two")
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,email,password", [
        ("", "a@example.com", "pw"),
        ("Ana", None, "pw"),
        ("Ana", "a@example.com", "  "),
        ("Ana", "not-an-email", "pw"),
    ])
    async def test_invalid_registration(self, services, name, email, password):
        with pytest.raises(ValidationError):
            await services.accounts.register(name, email, password)


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_returns_signed_token(self, services, test_settings):
        user_id = await services.accounts.register("Ana", "ana@example.com", "s3cret-pass")

        result = await services.accounts.login("ana@example.com", "s3cret-pass")

        assert result["user_id"] == user_id
        payload = jwt.decode(
            result["token"],
            test_settings.secret_key,
            algorithms=[test_settings.jwt_algorithm]
        )
        assert payload["sub"] == str(user_id)
        assert payload["type"] == "access"

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_the_same(self, services):
        await services.accounts.register("Ana", "ana@example.com", "s3cret-pass")

        with pytest.raises(InvalidCredentials) as wrong_pw:
            await services.accounts.login("ana@example.com", "nope")
        with pytest.raises(InvalidCredentials) as unknown:
            await services.accounts.login("bob@example.com", "nope")

        assert wrong_pw.value.to_dict() == unknown.value.to_dict()
        assert wrong_pw.value.status_code == 401
