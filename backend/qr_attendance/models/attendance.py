from pydantic import BaseModel
from typing import Optional, List
from uuid import UUID
import datetime

class StudentRef(BaseModel):
    full_name: str
    roll_number: Optional[str] = None

    class Config:
        frozen = True

class ClassRef(BaseModel):
    name: str

    class Config:
        frozen = True

class AttendanceRecord(BaseModel):
    """One mark as returned by the joined `attendance` select."""
    id: UUID
    student_id: UUID
    class_id: UUID
    qr_session_id: UUID
    marked_at: datetime.datetime
    profiles: StudentRef
    classes: ClassRef

    class Config:
        frozen = True
        from_attributes = True

class ClassInfo(BaseModel):
    id: UUID
    name: str
    teacher_id: Optional[UUID] = None
    created_at: Optional[datetime.datetime] = None

    class Config:
        frozen = True
        from_attributes = True

class ClassCreate(BaseModel):
    name: str

# --- Derived (analytics) ---

class ClassStats(BaseModel):
    class_name: str
    total_sessions: int
    total_attendance: int
    attendance_rate: float

    class Config:
        frozen = True

class DailyTrend(BaseModel):
    date: str  # e.g. "Oct 18"
    iso_date: datetime.date
    count: int

    class Config:
        frozen = True

class OverallStats(BaseModel):
    total_students: int = 0
    total_sessions: int = 0
    total_attendance: int = 0
    avg_attendance_rate: float = 0.0

    class Config:
        frozen = True

class AnalyticsReport(BaseModel):
    selected_class: str = "all"
    overall: OverallStats
    per_class: List[ClassStats]
    trend: List[DailyTrend]
    classes: List[ClassInfo] = []

    class Config:
        frozen = True

# --- QR sessions and scanning ---

class QRSession(BaseModel):
    id: UUID
    class_id: UUID
    teacher_id: UUID
    token: str
    expires_at: datetime.datetime
    created_at: Optional[datetime.datetime] = None

    class Config:
        from_attributes = True

class QRSessionResponse(BaseModel):
    session: QRSession
    qr_code_png: str  # base64

class ScanRequest(BaseModel):
    token: str

class AttendanceMarked(BaseModel):
    message: str
    attendance_id: UUID
    class_id: UUID
    qr_session_id: UUID
    marked_at: datetime.datetime
