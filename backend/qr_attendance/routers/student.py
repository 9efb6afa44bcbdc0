import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from supabase import Client

from qr_attendance.database import get_db
from qr_attendance.dependencies import StudentUser
from qr_attendance.exceptions import (
    DuplicateAttendanceError, MalformedRecordError, NotFoundError, SessionExpiredError
)
from qr_attendance.models.attendance import AttendanceMarked, AttendanceRecord, ScanRequest
from qr_attendance.models.user import UserInDB
from qr_attendance.services.attendance_service import AttendanceService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/student",
    tags=["Student"],
    dependencies=[StudentUser]
)

@router.post("/attendance/scan", response_model=AttendanceMarked, status_code=status.HTTP_201_CREATED)
async def scan_qr_code(
    scan: ScanRequest,
    current_user: UserInDB = StudentUser,
    db: Client = Depends(get_db)
):
    if not scan.token.strip():
        raise HTTPException(status_code=400, detail="QR code must not be empty.")
    try:
        return AttendanceService(db).mark_attendance(scan.token, current_user.id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SessionExpiredError as e:
        raise HTTPException(status_code=410, detail=str(e))
    except DuplicateAttendanceError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.exception("Failed to mark attendance for %s", current_user.id)
        raise HTTPException(status_code=500, detail=f"An error occurred: {str(e)}")

@router.get("/attendance", response_model=List[AttendanceRecord])
async def get_my_attendance(
    current_user: UserInDB = StudentUser,
    db: Client = Depends(get_db)
):
    try:
        return AttendanceService(db).list_for_student(current_user.id)
    except MalformedRecordError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.exception("Failed to list attendance for %s", current_user.id)
        raise HTTPException(status_code=500, detail=str(e))
