class AttendanceError(Exception):
    """Base class for errors raised by the attendance services."""


class NotFoundError(AttendanceError):
    """Class, session or profile does not exist."""


class PermissionDeniedError(AttendanceError):
    """The caller does not own the resource it is acting on."""


class SessionExpiredError(AttendanceError):
    """The scanned QR session is past its expiry."""


class DuplicateAttendanceError(AttendanceError):
    """The student already marked attendance for this session."""


class MalformedRecordError(AttendanceError):
    """A row from the data store is missing joined fields or has a bad timestamp."""
