import copy
import datetime
import uuid
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from qr_attendance.database import get_db
from qr_attendance.dependencies import get_current_user
from qr_attendance.main import app
from qr_attendance.models.user import UserInDB


def make_id(name: str) -> uuid.UUID:
    """Stable UUID for a readable name, e.g. make_id("Math")."""
    return uuid.uuid5(uuid.NAMESPACE_OID, name)


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Records the chained PostgREST calls the services make and replays them over a list of dicts."""

    def __init__(self, store, table):
        self._store = store
        self._table = table
        self._filters = []
        self._order = None
        self._insert = None

    def select(self, columns="*"):
        self._store.selects.append((self._table, columns))
        return self

    def eq(self, column, value):
        self._filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self._order = (column, desc)
        return self

    def insert(self, data):
        self._insert = data
        return self

    def execute(self):
        rows = self._store.tables.setdefault(self._table, [])
        if self._insert is not None:
            if self._table in self._store.insert_errors:
                raise self._store.insert_errors[self._table]
            if self._table in self._store.empty_inserts:
                return FakeResponse([])
            row = dict(self._insert)
            row.setdefault("id", str(uuid.uuid4()))
            row.setdefault("created_at", datetime.datetime.now(datetime.timezone.utc).isoformat())
            rows.append(row)
            return FakeResponse([copy.deepcopy(row)])

        result = [
            r for r in rows
            if all(str(r.get(col)) == str(val) for col, val in self._filters)
        ]
        if self._order:
            column, desc = self._order
            result.sort(key=lambda r: r[column], reverse=desc)
        return FakeResponse(copy.deepcopy(result))


class FakeAuthAdmin:
    def __init__(self, store):
        self._store = store

    def create_user(self, attributes):
        user = SimpleNamespace(
            id=str(uuid.uuid4()),
            email=attributes["email"],
            user_metadata=attributes.get("user_metadata", {}),
        )
        self._store.auth_users[user.email] = (user, attributes["password"])
        return SimpleNamespace(user=user)

    def delete_user(self, user_id):
        self._store.deleted_users.append(user_id)


class FakeAuth:
    def __init__(self, store):
        self._store = store
        self.admin = FakeAuthAdmin(store)

    def sign_in_with_password(self, credentials):
        entry = self._store.auth_users.get(credentials["email"])
        if not entry or entry[1] != credentials["password"]:
            return SimpleNamespace(user=None)
        return SimpleNamespace(user=entry[0])


class FakeSupabase:
    def __init__(self, tables=None):
        self.tables = tables or {}
        self.selects = []
        self.auth_users = {}
        self.deleted_users = []
        # table name -> exception raised by insert().execute()
        self.insert_errors = {}
        # tables whose insert comes back with no data
        self.empty_inserts = set()
        self.auth = FakeAuth(self)

    def table(self, name):
        return FakeQuery(self, name)


def attendance_row(student, class_name, session, marked_at, *, roll_number=None):
    """A joined `attendance` row as Supabase returns it."""
    return {
        "id": str(uuid.uuid4()),
        "student_id": str(make_id(student)),
        "class_id": str(make_id(class_name)),
        "qr_session_id": str(make_id(session)),
        "marked_at": marked_at,
        "profiles": {"full_name": student, "roll_number": roll_number or f"R-{student}"},
        "classes": {"name": class_name},
    }


@pytest.fixture
def fake_db():
    return FakeSupabase()


def profile(name, role, **extra):
    return {
        "id": str(make_id(name)),
        "email": f"{name.lower()}@school.edu",
        "full_name": name,
        "role": role,
        "roll_number": extra.get("roll_number"),
        "created_at": "2026-01-01T00:00:00+00:00",
    }


@pytest.fixture
def teacher_profile():
    return profile("Teacher", "teacher")


@pytest.fixture
def student_profile():
    return profile("Alice", "student", roll_number="R-1")


@pytest.fixture
def client(fake_db):
    app.dependency_overrides[get_db] = lambda: fake_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login_as():
    """Overrides the current user with the given profile row."""
    def _login(profile_row):
        app.dependency_overrides[get_current_user] = lambda: UserInDB(**profile_row)
    return _login
