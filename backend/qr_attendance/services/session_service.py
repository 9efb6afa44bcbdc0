import base64
import datetime
import io
import logging
import secrets
from typing import Optional
from uuid import UUID

import qrcode
from supabase import Client

from qr_attendance.config import settings
from qr_attendance.exceptions import NotFoundError, PermissionDeniedError
from qr_attendance.models.attendance import QRSession, QRSessionResponse

logger = logging.getLogger(__name__)


def render_qr_png(payload: str) -> bytes:
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=2,
    )
    qr.add_data(payload)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf)
    return buf.getvalue()


class SessionService:
    """Creates the QR-coded attendance sessions teachers project in class."""

    def __init__(self, db: Client, ttl_minutes: Optional[int] = None):
        self.db = db
        self.ttl = datetime.timedelta(
            minutes=ttl_minutes if ttl_minutes is not None else settings.QR_SESSION_TTL_MINUTES
        )

    def _get_owned_class(self, class_id: UUID, teacher_id: UUID) -> dict:
        response = (
            self.db.table("classes")
            .select("id, name, teacher_id")
            .eq("id", str(class_id))
            .execute()
        )
        if not response.data:
            raise NotFoundError(f"Class {class_id} not found.")
        cls = response.data[0]
        if str(cls.get("teacher_id")) != str(teacher_id):
            raise PermissionDeniedError("You are not the teacher for this class.")
        return cls

    def create_session(
        self,
        class_id: UUID,
        teacher_id: UUID,
        now: Optional[datetime.datetime] = None,
    ) -> QRSession:
        self._get_owned_class(class_id, teacher_id)

        now = now or datetime.datetime.now(datetime.timezone.utc)
        session_data = {
            "class_id": str(class_id),
            "teacher_id": str(teacher_id),
            "token": secrets.token_urlsafe(24),
            "expires_at": (now + self.ttl).isoformat(),
        }
        response = self.db.table("qr_sessions").insert(session_data).execute()
        if not response.data:
            raise RuntimeError("Failed to create QR session.")

        session = QRSession.model_validate(response.data[0])
        logger.info("QR session %s opened for class %s until %s", session.id, class_id, session.expires_at)
        return session

    def create_session_with_code(
        self,
        class_id: UUID,
        teacher_id: UUID,
        now: Optional[datetime.datetime] = None,
    ) -> QRSessionResponse:
        session = self.create_session(class_id, teacher_id, now=now)
        png = render_qr_png(session.token)
        return QRSessionResponse(
            session=session,
            qr_code_png=base64.b64encode(png).decode("utf-8"),
        )
