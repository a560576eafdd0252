"""
User accounts: registration and password login

Passwords are stored as bcrypt hashes; a successful login returns a signed
JWT access token. Greenhouse endpoints still take the user id explicitly.
"""
import asyncio
from datetime import timedelta
from typing import Optional

import bcrypt
import jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..config import Settings, settings as default_settings
from ..database import Database
from ..exceptions import (
    DatabaseError,
    EmailAlreadyRegistered,
    InvalidCredentials,
    ValidationError,
)
from ..logging_config import get_logger
from ..models import User
from ..utils import is_blank, is_valid_email, utcnow

logger = get_logger(__name__)


def hash_password(password: str, rounds: int = 12) -> str:
    """bcrypt hash as text"""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Compare a password with its stored bcrypt hash"""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


class AccountService:
    """Owns the users table"""

    def __init__(self, db: Database, config: Optional[Settings] = None):
        self.db = db
        self.config = config or default_settings

    async def register(self, name: Optional[str], email: Optional[str], password: Optional[str]) -> int:
        """Create a user and return its id"""
        for field, value in (("name", name), ("email", email), ("password", password)):
            if is_blank(value):
                raise ValidationError(field, "is required")

        email = email.strip().lower()
        if not is_valid_email(email):
            raise ValidationError("email", "is not a valid address")

        password_hash = await asyncio.to_thread(hash_password, password, self.config.bcrypt_rounds)

        try:
            async with self.db.transaction() as s:
                existing = await s.execute(select(User.id).where(User.email == email))
                if existing.scalar_one_or_none() is not None:
                    raise EmailAlreadyRegistered(email)

                user = User(name=name.strip(), email=email, password_hash=password_hash)
                s.add(user)
                await s.flush()
                user_id = user.id
        except DatabaseError as e:
            # Lost a race with a concurrent registration of the same email
            if isinstance(e.__cause__, IntegrityError):
                raise EmailAlreadyRegistered(email) from e
            raise

        logger.info("user_registered", user_id=user_id)
        return user_id

    async def login(self, email: Optional[str], password: Optional[str]) -> dict:
        """Verify credentials; returns {"user_id", "token"}"""
        if is_blank(email) or is_blank(password):
            raise ValidationError("email, password", "are required")

        async with self.db.transaction() as s:
            result = await s.execute(
                select(User.id, User.password_hash).where(User.email == email.strip().lower())
            )
            row = result.one_or_none()

        if row is None:
            raise InvalidCredentials()

        matched = await asyncio.to_thread(verify_password, password, row.password_hash)
        if not matched:
            logger.info("login_failed", user_id=row.id)
            raise InvalidCredentials()

        logger.info("login_succeeded", user_id=row.id)
        return {"user_id": row.id, "token": self.create_access_token(row.id)}

    def create_access_token(self, user_id: int) -> str:
        """Signed JWT with sub=user id"""
        now = utcnow()
        payload = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + timedelta(minutes=self.config.access_token_expire_minutes),
            "type": "access",
        }
        return jwt.encode(payload, self.config.secret_key, algorithm=self.config.jwt_algorithm)
