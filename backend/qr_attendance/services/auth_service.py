import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from uuid import UUID

from jose import JWTError, jwt
from pydantic import EmailStr
from supabase import Client

from qr_attendance.config import settings
from qr_attendance.models.auth import TokenData

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, db: Client):
        self.db = db

    @property
    def access_token_expires(self) -> timedelta:
        return timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    @property
    def refresh_token_expires(self) -> timedelta:
        return timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    def create_access_token(self, data: dict, expires_delta: timedelta) -> str:
        """Creates a signed JWT that expires after `expires_delta`."""
        to_encode = data.copy()
        to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})
        return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.ALGORITHM)

    def create_tokens(self, user_id: UUID, email: EmailStr, role: str) -> Tuple[str, str]:
        """Generates both access and refresh tokens for a user."""
        access_token = self.create_access_token(
            data={"sub": str(user_id), "email": email, "role": role, "type": "access"},
            expires_delta=self.access_token_expires,
        )
        refresh_token = self.create_access_token(
            data={"sub": str(user_id), "type": "refresh"},
            expires_delta=self.refresh_token_expires,
        )
        return access_token, refresh_token

    def decode_token(self, token: str) -> Optional[TokenData]:
        """Decodes a JWT token and returns its payload, or None when invalid/expired."""
        try:
            payload = jwt.decode(
                token, settings.JWT_SECRET_KEY, algorithms=[settings.ALGORITHM]
            )
        except JWTError:
            return None

        user_id = payload.get("sub")
        if user_id is None:
            return None
        return TokenData(
            user_id=user_id,
            email=payload.get("email"),
            role=payload.get("role"),
            type=payload.get("type"),
        )

    def get_role(self, user) -> Optional[str]:
        """Role from Supabase user metadata, falling back to the profiles table."""
        role = (user.user_metadata or {}).get("role")
        if role:
            return role
        response = self.db.table("profiles").select("role").eq("id", str(user.id)).execute()
        if not response.data:
            return None
        return response.data[0]["role"]

    def create_supabase_user(
        self,
        email: EmailStr,
        password: str,
        full_name: str,
        role: str,
        roll_number: Optional[str] = None,
    ):
        """
        Creates a user in Supabase Auth (using admin privileges)
        and inserts the matching row into the public 'profiles' table.
        """
        new_user = None
        try:
            auth_response = self.db.auth.admin.create_user({
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": {"full_name": full_name, "role": role},
            })
            if auth_response.user is None:
                raise RuntimeError("Failed to create user in Supabase Auth.")
            new_user = auth_response.user

            insert_response = self.db.table("profiles").insert({
                "id": new_user.id,
                "email": new_user.email,
                "full_name": full_name,
                "role": role,
                "roll_number": roll_number,
            }).execute()
            if not insert_response.data:
                raise RuntimeError("Auth user created, but profile insert failed.")

            return new_user

        except Exception:
            logger.exception("Error creating user %s", email)
            # Don't leave an auth user without a profile behind.
            if new_user is not None:
                self.db.auth.admin.delete_user(new_user.id)
                logger.warning("Cleanup: deleted auth user %s after profile insert failure", new_user.id)
            raise
