from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from supabase import Client
from typing import List

from qr_attendance.database import get_db
from qr_attendance.services.auth_service import AuthService
from qr_attendance.models.user import UserInDB

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

credentials_exception = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)

def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Client = Depends(get_db)
) -> UserInDB:
    """
    Dependency to get the current user from a JWT access token.
    Decodes the token, fetches the row from the 'profiles' table,
    and returns the UserInDB model.
    """
    auth_service = AuthService(db)
    token_data = auth_service.decode_token(token)

    if not token_data or not token_data.user_id or token_data.type != "access":
        raise credentials_exception

    try:
        response = db.table("profiles").select("*").eq("id", token_data.user_id).execute()
    except Exception:
        raise credentials_exception

    if not response.data:
        raise credentials_exception
    return UserInDB(**response.data[0])

# Role-Based Access Control (RBAC) Dependency
class RBAC:
    def __init__(self, roles: List[str]):
        self.roles = roles

    def __call__(self, current_user: UserInDB = Depends(get_current_user)):
        """
        Checks if the current user's role is in the allowed roles list.
        """
        if current_user.role not in self.roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. User role '{current_user.role}' is not authorized.",
            )
        return current_user

TeacherUser = Depends(RBAC(roles=["teacher"]))
StudentUser = Depends(RBAC(roles=["student"]))
