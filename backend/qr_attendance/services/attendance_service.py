import datetime
import logging
from typing import List, Optional
from uuid import UUID

from postgrest import APIError
from supabase import Client

from qr_attendance.exceptions import (
    DuplicateAttendanceError, NotFoundError, SessionExpiredError
)
from qr_attendance.models.attendance import AttendanceMarked, AttendanceRecord, QRSession
from qr_attendance.services.analytics_service import RECORD_SELECT, parse_records

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class AttendanceService:
    def __init__(self, db: Client):
        self.db = db

    def _get_session_by_token(self, token: str) -> QRSession:
        response = (
            self.db.table("qr_sessions")
            .select("*")
            .eq("token", token.strip())
            .execute()
        )
        if not response.data:
            raise NotFoundError("Invalid QR code.")
        return QRSession.model_validate(response.data[0])

    def mark_attendance(
        self,
        token: str,
        student_id: UUID,
        now: Optional[datetime.datetime] = None,
    ) -> AttendanceMarked:
        """
        Core service to mark a student present from a scanned QR token.
        1. Resolves the token to its session.
        2. Rejects expired sessions and repeated scans.
        3. Inserts the attendance row.
        """
        session = self._get_session_by_token(token)

        now = now or datetime.datetime.now(datetime.timezone.utc)
        expires_at = session.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=datetime.timezone.utc)
        if now >= expires_at:
            raise SessionExpiredError("This QR code has expired. Ask your teacher for a new one.")

        existing = (
            self.db.table("attendance")
            .select("id")
            .eq("qr_session_id", str(session.id))
            .eq("student_id", str(student_id))
            .execute()
        )
        if existing.data:
            raise DuplicateAttendanceError("Attendance already marked for this session.")

        try:
            response = self.db.table("attendance").insert({
                "student_id": str(student_id),
                "class_id": str(session.class_id),
                "qr_session_id": str(session.id),
                "marked_at": now.isoformat(),
            }).execute()
        except APIError as e:
            # Unique (qr_session_id, student_id): a concurrent scan won the insert
            if e.code == UNIQUE_VIOLATION:
                raise DuplicateAttendanceError("Attendance already marked for this session.") from e
            raise
        if not response.data:
            raise RuntimeError("Failed to save attendance record.")

        row = response.data[0]
        logger.info("Student %s marked present in session %s", student_id, session.id)
        return AttendanceMarked(
            message="Attendance marked successfully",
            attendance_id=row["id"],
            class_id=session.class_id,
            qr_session_id=session.id,
            marked_at=row.get("marked_at", now),
        )

    def list_for_student(self, student_id: UUID) -> List[AttendanceRecord]:
        response = (
            self.db.table("attendance")
            .select(RECORD_SELECT)
            .eq("student_id", str(student_id))
            .order("marked_at", desc=True)
            .execute()
        )
        return parse_records(response.data or [])
