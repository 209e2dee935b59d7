from passlib.context import CryptContext
from db.models.user import User
from db.repositories.user_repository import UserRepository
from datetime import datetime, timedelta, timezone
from fastapi import Request
import jwt
import logging
import os

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 30


class UserServiceException(Exception):
    def __init__(self, detail):
        super().__init__(detail)
        self.detail = detail

    def __str__(self):
        return str(self.detail)


class UserService:
    """Thin authentication layer: password accounts and bearer JWTs."""

    def __init__(self, user_repo: UserRepository):
        self.user_repo = user_repo
        self.pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")
        self.secret_key = os.getenv("JWT_SECRET")
        if not self.secret_key:
            raise UserServiceException("JWT_SECRET is not configured")

    def signup(self, email: str, password: str) -> User:
        if not email or "@" not in email:
            logger.error(f"Invalid email address: {email}")
            raise UserServiceException("Invalid email address")
        if len(password) < 8:
            raise UserServiceException("Password must be at least 8 characters long")
        if self.user_repo.get_user_by_email(email):
            logger.error(f"Email already registered: {email}")
            raise UserServiceException("Email already registered")
        user = User(email=email, hashed_password=self.pwd_context.hash(password))
        self.user_repo.create_user(user)
        logger.info(f"Created user with email {email}")
        return user

    def login(self, email: str, password: str) -> str:
        user = self.user_repo.get_user_by_email(email)
        if not user or not self.pwd_context.verify(password, user.hashed_password):
            logger.error(f"Login failed for email {email}: Invalid credentials")
            raise UserServiceException("Invalid credentials")
        if not user.is_active:
            raise UserServiceException("Account is disabled")
        return self.create_access_token(
            {"sub": str(user.id)}, timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
        )

    def create_access_token(self, data: dict, expires_delta: timedelta) -> str:
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + expires_delta
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, self.secret_key, algorithm=ALGORITHM)

    def get_current_user(self, token: str) -> User:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[ALGORITHM])
        except jwt.ExpiredSignatureError:
            logger.info("Token has expired")
            raise UserServiceException("Token expired")
        except jwt.PyJWTError as e:
            logger.error(f"JWT decode error: {e}")
            raise UserServiceException("Not authenticated")

        try:
            user_id = int(payload.get("sub"))
        except (TypeError, ValueError):
            logger.error(f"Invalid user_id in token payload: {payload.get('sub')!r}")
            raise UserServiceException("Not authenticated")

        user = self.user_repo.get_user_by_id(user_id)
        if user is None or not user.is_active:
            raise UserServiceException("Not authenticated")
        return user

    async def get_current_user_from_request(self, request: Request) -> User:
        token = request.cookies.get("access_token")
        if not token:
            auth = request.headers.get("Authorization") or ""
            if auth.lower().startswith("bearer "):
                token = auth.split(" ", 1)[1].strip()
        if not token:
            raise UserServiceException("Not authenticated")
        # Cookies written by some clients keep the scheme prefix
        if token.lower().startswith("bearer "):
            token = token.split(" ", 1)[1].strip()
        return self.get_current_user(token)
