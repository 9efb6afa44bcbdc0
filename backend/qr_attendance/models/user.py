from pydantic import BaseModel, EmailStr
from typing import Literal, Optional
from uuid import UUID
import datetime

Role = Literal['teacher', 'student']

class UserInDB(BaseModel):
    """A row of the public `profiles` table."""
    id: UUID
    email: EmailStr
    full_name: str
    role: Role
    roll_number: Optional[str] = None
    created_at: datetime.datetime

    class Config:
        from_attributes = True
