import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from supabase import Client, AuthApiError
from postgrest import APIError

from qr_attendance.database import get_db
from qr_attendance.services.auth_service import AuthService
from qr_attendance.models.auth import (
    LoginResponse, RefreshRequest, AccessTokenResponse,
    RegisterRequest, RegisterResponse
)
from qr_attendance.dependencies import credentials_exception, get_current_user
from qr_attendance.models.user import UserInDB

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/auth",
    tags=["Authentication"]
)

@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    payload: RegisterRequest,
    db: Client = Depends(get_db)
):
    """
    Creates a student or teacher account in Supabase Auth plus its profile row.
    """
    if payload.role == "student" and not payload.roll_number:
        raise HTTPException(status_code=422, detail="Students must provide a roll number.")

    if db.table("profiles").select("id").eq("email", payload.email).execute().data:
        raise HTTPException(status_code=400, detail="User with this email already exists.")
    if payload.roll_number and db.table("profiles").select("id").eq("roll_number", payload.roll_number).execute().data:
        raise HTTPException(status_code=400, detail="User with this roll number already exists.")

    auth_service = AuthService(db)
    try:
        new_user = auth_service.create_supabase_user(
            email=payload.email,
            password=payload.password,
            full_name=payload.full_name,
            role=payload.role,
            roll_number=payload.roll_number,
        )
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create user: {e}")

    return RegisterResponse(id=new_user.id, email=new_user.email, role=payload.role)

@router.post("/login", response_model=LoginResponse)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Client = Depends(get_db)
):
    """
    Login endpoint. Uses Supabase Auth to verify credentials
    and then generates our own JWTs (access and refresh).
    """
    try:
        auth_response = db.auth.sign_in_with_password({
            "email": form_data.username,
            "password": form_data.password
        })
        user = auth_response.user
        if not user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password.",
            )

        auth_service = AuthService(db)
        user_role = auth_service.get_role(user)
        if user_role not in ("teacher", "student"):
            # Auth user without a usable profile
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials",
            )

        access_token, refresh_token = auth_service.create_tokens(
            user_id=user.id,
            email=user.email,
            role=user_role
        )
        return LoginResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            user_role=user_role,
        )

    except AuthApiError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )
    except HTTPException:
        raise
    except APIError as e:
        logger.exception("Profile lookup failed during login")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database error: {e.message}",
        )
    except Exception as e:
        logger.exception("Unexpected login failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"An unexpected error occurred: {str(e)}",
        )


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh_access_token(
    refresh_request: RefreshRequest,
    db: Client = Depends(get_db)
):
    """
    Refreshes an access token using a valid refresh token.
    """
    auth_service = AuthService(db)
    token_data = auth_service.decode_token(refresh_request.refresh_token)

    if not token_data or not token_data.user_id or token_data.type != "refresh":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )

    try:
        user_resp = db.table("profiles").select("email, role").eq("id", token_data.user_id).execute()
    except Exception:
        raise credentials_exception
    if not user_resp.data:
        raise credentials_exception

    user_data = user_resp.data[0]
    new_access_token = auth_service.create_access_token(
        data={"sub": token_data.user_id, "email": user_data['email'], "role": user_data['role'], "type": "access"},
        expires_delta=auth_service.access_token_expires
    )
    return AccessTokenResponse(access_token=new_access_token)


@router.post("/logout")
async def logout_user(current_user: UserInDB = Depends(get_current_user)):
    """
    Client-side logout. Tokens are stateless JWTs, so the server only
    checks the caller is authenticated; the client must delete its tokens.
    """
    logger.info("User %s logged out", current_user.id)
    return {"message": "Logout successful. Client must delete tokens."}
