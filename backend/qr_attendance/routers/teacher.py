import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from postgrest import APIError
from supabase import Client

from qr_attendance.database import get_db
from qr_attendance.dependencies import TeacherUser
from qr_attendance.exceptions import MalformedRecordError, NotFoundError, PermissionDeniedError
from qr_attendance.models.attendance import (
    AnalyticsReport, AttendanceRecord, ClassCreate, ClassInfo, QRSessionResponse
)
from qr_attendance.models.user import UserInDB
from qr_attendance.services.analytics_service import ALL_CLASSES, AnalyticsService
from qr_attendance.services.session_service import SessionService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/teacher",
    tags=["Teacher"],
    dependencies=[TeacherUser]
)

# --- 1. Classes ---

@router.get("/classes", response_model=List[ClassInfo])
async def list_classes(db: Client = Depends(get_db)):
    """All classes, ordered by name (feeds the analytics class filter)."""
    try:
        return AnalyticsService(db).fetch_classes()
    except Exception as e:
        logger.exception("Failed to list classes")
        raise HTTPException(status_code=500, detail=str(e))

@router.post("/classes", response_model=ClassInfo, status_code=status.HTTP_201_CREATED)
async def create_class(
    payload: ClassCreate,
    current_user: UserInDB = TeacherUser,
    db: Client = Depends(get_db)
):
    try:
        response = db.table("classes").insert({
            "name": payload.name,
            "teacher_id": str(current_user.id),
        }).execute()
    except APIError as e:
        if "duplicate key" in str(e):
            raise HTTPException(status_code=400, detail=f"Class '{payload.name}' already exists.")
        logger.exception("Failed to create class")
        raise HTTPException(status_code=500, detail=str(e))
    if not response.data:
        raise HTTPException(status_code=500, detail="Failed to create class.")
    return response.data[0]

# --- 2. QR sessions ---

@router.post(
    "/classes/{class_id}/sessions",
    response_model=QRSessionResponse,
    status_code=status.HTTP_201_CREATED
)
async def generate_qr_session(
    class_id: UUID,
    current_user: UserInDB = TeacherUser,
    db: Client = Depends(get_db)
):
    """
    Opens a new attendance session for the class and returns its QR code
    (base64 PNG). Students scan it before it expires.
    """
    try:
        return SessionService(db).create_session_with_code(class_id, current_user.id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except Exception as e:
        logger.exception("Failed to create QR session for class %s", class_id)
        raise HTTPException(status_code=500, detail=f"An error occurred: {str(e)}")

# --- 3. Attendance and analytics ---

@router.get("/attendance", response_model=List[AttendanceRecord])
async def get_attendance_records(db: Client = Depends(get_db)):
    """Full joined attendance dump, newest first."""
    try:
        return AnalyticsService(db).fetch_records()
    except MalformedRecordError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.exception("Failed to fetch attendance records")
        raise HTTPException(status_code=500, detail=str(e))

@router.get("/analytics", response_model=AnalyticsReport)
async def get_attendance_analytics(
    class_id: str = Query(ALL_CLASSES, description="Class id, or 'all' for every class"),
    db: Client = Depends(get_db)
):
    """
    Overall counters, per-class statistics and the last-7-days trend.
    The class filter applies to the overall counters and the trend only.
    """
    if class_id != ALL_CLASSES:
        try:
            # Canonical lowercase form, as the records carry it
            class_id = str(UUID(class_id))
        except ValueError:
            raise HTTPException(status_code=422, detail=f"Invalid class_id '{class_id}'.")

    try:
        return AnalyticsService(db).build_report(class_id)
    except MalformedRecordError as e:
        logger.error("Rejected attendance dump: %s", e)
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.exception("Failed to build analytics report")
        raise HTTPException(status_code=500, detail=f"An error occurred: {str(e)}")
