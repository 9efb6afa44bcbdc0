from pydantic import BaseModel, EmailStr, Field
from typing import Literal, Optional
from uuid import UUID

from qr_attendance.models.user import Role

TokenType = Literal['access', 'refresh']

class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user_role: Role

class TokenData(BaseModel):
    user_id: Optional[str] = None
    email: Optional[str] = None
    role: Optional[Role] = None
    type: Optional[TokenType] = None

class RefreshRequest(BaseModel):
    refresh_token: str

class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str
    role: Role
    roll_number: Optional[str] = Field(None, description="Required when role is 'student'")

class RegisterResponse(BaseModel):
    id: UUID
    email: EmailStr
    role: Role
