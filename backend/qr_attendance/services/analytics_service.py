import datetime
import logging
from typing import Dict, Iterable, List, Optional, Set
from zoneinfo import ZoneInfo

from pydantic import ValidationError
from supabase import Client

from qr_attendance.config import settings
from qr_attendance.exceptions import MalformedRecordError
from qr_attendance.models.attendance import (
    AnalyticsReport, AttendanceRecord, ClassInfo, ClassStats,
    DailyTrend, OverallStats
)

logger = logging.getLogger(__name__)

ALL_CLASSES = "all"
TREND_DAYS = 7

RECORD_SELECT = "*, profiles(full_name, roll_number), classes(name)"


def resolve_timezone(name: Optional[str] = None) -> Optional[datetime.tzinfo]:
    """Returns the configured zone, or None for the server's local zone."""
    name = settings.TIMEZONE if name is None else name
    return ZoneInfo(name) if name else None


def today_local(tz: Optional[datetime.tzinfo] = None) -> datetime.date:
    return datetime.datetime.now(tz).date()


def _local_date(marked_at: datetime.datetime, tz: Optional[datetime.tzinfo]) -> datetime.date:
    # Naive timestamps are taken as already being in the viewer's zone.
    if marked_at.tzinfo is None:
        return marked_at.date()
    return marked_at.astimezone(tz).date()


def _short_date(day: datetime.date) -> str:
    return f"{day.strftime('%b')} {day.day}"


def calculate_stats(
    records: List[AttendanceRecord],
    selected_class_id: Optional[str] = None,
    *,
    today: datetime.date,
    tz: Optional[datetime.tzinfo] = None,
) -> AnalyticsReport:
    """
    Aggregates a full attendance dump into the dashboard report.

    Overall stats and the daily trend honor `selected_class_id`
    (None or "all" means every class). Per-class stats are always
    computed over the unfiltered records, grouped by class name in
    first-seen order.
    """
    selected = str(selected_class_id) if selected_class_id is not None else ALL_CLASSES
    if selected == ALL_CLASSES:
        filtered = list(records)
    else:
        filtered = [r for r in records if str(r.class_id) == selected]

    # 1. Overall
    unique_students = len({r.student_id for r in filtered})
    unique_sessions = len({r.qr_session_id for r in filtered})
    total_attendance = len(filtered)
    avg_rate = 0.0
    if unique_sessions > 0:
        avg_rate = (total_attendance / unique_sessions) * 100 / max(unique_students, 1)

    overall = OverallStats(
        total_students=unique_students,
        total_sessions=unique_sessions,
        total_attendance=total_attendance,
        avg_attendance_rate=avg_rate,
    )

    # 2. Per class (unfiltered)
    marks_per_class: Dict[str, int] = {}
    sessions_per_class: Dict[str, Set] = {}
    for record in records:
        class_name = record.classes.name
        marks_per_class[class_name] = marks_per_class.get(class_name, 0) + 1
        sessions_per_class.setdefault(class_name, set()).add(record.qr_session_id)

    per_class = []
    for class_name, marks in marks_per_class.items():
        sessions = len(sessions_per_class.get(class_name, ()))
        per_class.append(ClassStats(
            class_name=class_name,
            total_sessions=sessions,
            total_attendance=marks,
            attendance_rate=(marks / sessions) if sessions > 0 else 0.0,
        ))

    # 3. Daily trend, oldest -> newest, zero days included
    window: Dict[datetime.date, int] = {
        today - datetime.timedelta(days=offset): 0
        for offset in range(TREND_DAYS - 1, -1, -1)
    }
    for record in filtered:
        day = _local_date(record.marked_at, tz)
        if day in window:
            window[day] += 1

    trend = [
        DailyTrend(date=_short_date(day), iso_date=day, count=count)
        for day, count in window.items()
    ]

    return AnalyticsReport(
        selected_class=selected,
        overall=overall,
        per_class=per_class,
        trend=trend,
    )


def parse_records(rows: Iterable[dict]) -> List[AttendanceRecord]:
    """Validates joined rows; anything missing its class name or timestamp is rejected."""
    records = []
    for row in rows:
        try:
            records.append(AttendanceRecord.model_validate(row))
        except ValidationError as e:
            raise MalformedRecordError(f"Attendance row {row.get('id')!r} is malformed: {e}") from e
    return records


class AnalyticsService:
    def __init__(self, db: Client, tz: Optional[datetime.tzinfo] = None):
        self.db = db
        self.tz = tz if tz is not None else resolve_timezone()

    def fetch_classes(self) -> List[ClassInfo]:
        response = self.db.table("classes").select("*").order("name").execute()
        return [ClassInfo.model_validate(row) for row in (response.data or [])]

    def fetch_records(self) -> List[AttendanceRecord]:
        response = (
            self.db.table("attendance")
            .select(RECORD_SELECT)
            .order("marked_at", desc=True)
            .execute()
        )
        return parse_records(response.data or [])

    def build_report(
        self,
        selected_class_id: Optional[str] = None,
        today: Optional[datetime.date] = None,
    ) -> AnalyticsReport:
        classes = self.fetch_classes()
        records = self.fetch_records()
        today = today or today_local(self.tz)
        logger.debug(
            "Aggregating %d attendance records (class=%s, today=%s)",
            len(records), selected_class_id or ALL_CLASSES, today,
        )
        report = calculate_stats(records, selected_class_id, today=today, tz=self.tz)
        return report.model_copy(update={"classes": classes})
