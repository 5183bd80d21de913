from __future__ import annotations

from datetime import date, datetime
from typing import Callable, TypeVar

from .constants import PAYMENTS, STATIONS, STUDENTS, USERS
from .errors import ContextError, StoreError, ValidationError
from .identity import Credentials, IdentityProvider
from .ledger import plan_payment
from .logger import ActivityLog, ErrorLogger, now_ts
from .models import (
    Payment,
    PaymentStatus,
    Role,
    Station,
    StationUpdate,
    Student,
    StudentUpdate,
    User,
    UserUpdate,
)
from .settings_store import Settings
from .storage import EntityStore

T = TypeVar("T")


def _iso_now() -> str:
    return datetime.now().isoformat(timespec="milliseconds")


class Session:
    """The logged-in user for one run of the app.

    Created by SessionManager.login/restore and closed by logout. A closed
    session refuses to hand out its user.
    """

    def __init__(self, user: User):
        self._user = user
        self.started_at = now_ts()
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def user(self) -> User:
        if not self._open:
            raise ContextError("Session used after logout")
        return self._user

    def close(self) -> None:
        self._open = False


class SessionManager:
    def __init__(self, provider: IdentityProvider, err_logger: ErrorLogger | None = None, activity: ActivityLog | None = None):
        self.provider = provider
        self.err_logger = err_logger or ErrorLogger()
        self.activity = activity or ActivityLog(err_logger=self.err_logger)
        self.current: Session | None = None

    def restore(self) -> Session | None:
        try:
            user = self.provider.restore()
        except StoreError as e:
            self.err_logger.log_exception(e, "restore_session")
            return None
        if user is not None:
            self.current = Session(user)
        return self.current

    def login(self, email: str, password: str = "") -> Session | None:
        """Identity errors propagate so the caller can show their message."""
        user = self.provider.login(Credentials(email=email, password=password))
        if user is None:
            return None
        if self.current is not None:
            self.current.close()
        self.current = Session(user)
        self.activity.emit("login", "user", user.id, user.email)
        return self.current

    def logout(self) -> None:
        session, self.current = self.current, None
        try:
            self.provider.logout()
        except StoreError as e:
            self.err_logger.log_exception(e, "logout")
        if session is not None:
            self.activity.emit("logout", "user", session.user.id, session.user.email)
            session.close()


class AppState:
    """In-memory snapshot of the four collections plus every mutation.

    Each mutation talks to the store, then re-reads the affected collections.
    A StoreError is logged and leaves the snapshot as it was; the method then
    returns None or False. Validation errors are raised before any store call.
    """

    def __init__(
        self,
        store: EntityStore,
        settings: Settings | None = None,
        err_logger: ErrorLogger | None = None,
        activity: ActivityLog | None = None,
        clock: Callable[[], str] = _iso_now,
    ):
        self.store = store
        self.settings = settings or Settings()
        self.err_logger = err_logger or ErrorLogger()
        self.activity = activity or ActivityLog(err_logger=self.err_logger)
        self.clock = clock
        self._loaded = False
        self._users: list[User] = []
        self._stations: list[Station] = []
        self._students: list[Student] = []
        self._payments: list[Payment] = []

    # ---------------- Snapshot ----------------
    def _require_loaded(self) -> None:
        if not self._loaded:
            raise ContextError("AppState used before load()")

    @property
    def users(self) -> list[User]:
        self._require_loaded()
        return self._users

    @property
    def stations(self) -> list[Station]:
        self._require_loaded()
        return self._stations

    @property
    def students(self) -> list[Student]:
        self._require_loaded()
        return self._students

    @property
    def payments(self) -> list[Payment]:
        self._require_loaded()
        return self._payments

    @property
    def teachers(self) -> list[User]:
        return [u for u in self.users if u.is_teacher]

    def load(self) -> bool:
        self._loaded = True
        return self.reload(USERS, STATIONS, STUDENTS, PAYMENTS)

    def reload(self, *collections: str) -> bool:
        ok = True
        for c in collections:
            try:
                self._read(c)
            except StoreError as e:
                self.err_logger.log_exception(e, f"reload {c}")
                ok = False
        return ok

    def _parse(self, collection: str, rows: list[dict], from_dict: Callable[[dict], T]) -> list[T]:
        # A malformed record is logged and left out; the rest still load.
        out: list[T] = []
        for r in rows:
            try:
                out.append(from_dict(r))
            except (TypeError, ValueError) as e:
                self.err_logger.log_exception(e, f"reload {collection}: skipped record {r.get('id', '?')}")
        return out

    def _read(self, collection: str) -> None:
        rows = self.store.list(collection)
        if collection == USERS:
            self._users = self._parse(collection, rows, User.from_dict)
        elif collection == STATIONS:
            self._stations = self._parse(collection, rows, Station.from_dict)
        elif collection == STUDENTS:
            self._students = self._parse(collection, rows, Student.from_dict)
        elif collection == PAYMENTS:
            self._payments = self._parse(collection, rows, Payment.from_dict)

    def station(self, station_id: str | None) -> Station | None:
        return next((s for s in self.stations if s.id == station_id), None)

    def student(self, student_id: str) -> Student | None:
        return next((s for s in self.students if s.id == student_id), None)

    def teacher_for_station(self, station_id: str) -> User | None:
        return next((u for u in self.users if u.is_teacher and u.station_id == station_id), None)

    # ---------------- Stations ----------------
    def add_station(self, name: str) -> str | None:
        fields = StationUpdate(name=name or "").to_fields()
        try:
            sid = self.store.create(STATIONS, fields)
        except StoreError as e:
            self.err_logger.log_exception(e, "add_station")
            return None
        self.reload(STATIONS)
        self.activity.emit("add_station", "station", sid, fields["name"])
        return sid

    def update_station(self, station_id: str, update: StationUpdate) -> bool:
        fields = update.to_fields()
        try:
            ok = self.store.update(STATIONS, station_id, fields)
        except StoreError as e:
            self.err_logger.log_exception(e, "update_station")
            return False
        self.reload(STATIONS)
        if ok:
            self.activity.emit("edit_station", "station", station_id, str(fields))
        return ok

    def delete_station(self, station_id: str) -> bool:
        """Delete a station, its students, and unassign its teachers.

        The dependent writes are independent; any that fail are logged and the
        snapshot is rebuilt from whatever the store holds afterwards. Returns
        True only when every step succeeded.
        """
        try:
            if not self.store.delete(STATIONS, station_id):
                self.reload(STATIONS)
                return False
        except StoreError as e:
            self.err_logger.log_exception(e, "delete_station")
            return False

        complete = True
        try:
            students = [Student.from_dict(r) for r in self.store.list(STUDENTS)]
            users = [User.from_dict(r) for r in self.store.list(USERS)]
        except StoreError as e:
            self.err_logger.log_exception(e, "delete_station: list dependents")
            students, users = [], []
            complete = False

        for s in students:
            if s.station_id != station_id:
                continue
            try:
                self.store.delete(STUDENTS, s.id)
            except StoreError as e:
                self.err_logger.log_exception(e, f"delete_station: student {s.id}")
                complete = False
        for u in users:
            if u.station_id != station_id:
                continue
            try:
                self.store.update(USERS, u.id, UserUpdate(clear_station=True).to_fields())
            except StoreError as e:
                self.err_logger.log_exception(e, f"delete_station: user {u.id}")
                complete = False

        complete = self.reload(STATIONS, STUDENTS, USERS) and complete
        self.activity.emit("delete_station", "station", station_id, "complete" if complete else "partial")
        return complete

    # ---------------- Students ----------------
    def add_student(self, full_name: str, station_id: str) -> str | None:
        update = StudentUpdate(full_name=full_name or "", station_id=station_id or "")
        fields = update.to_fields()
        try:
            sid = self.store.create(STUDENTS, fields)
        except StoreError as e:
            self.err_logger.log_exception(e, "add_student")
            return None
        self.reload(STUDENTS)
        self.activity.emit("add_student", "student", sid, fields["fullName"])
        return sid

    def update_student(self, student_id: str, update: StudentUpdate) -> bool:
        fields = update.to_fields()
        try:
            ok = self.store.update(STUDENTS, student_id, fields)
        except StoreError as e:
            self.err_logger.log_exception(e, "update_student")
            return False
        self.reload(STUDENTS)
        if ok:
            self.activity.emit("edit_student", "student", student_id, str(fields))
        return ok

    def delete_student(self, student_id: str) -> bool:
        try:
            ok = self.store.delete(STUDENTS, student_id)
        except StoreError as e:
            self.err_logger.log_exception(e, "delete_student")
            return False
        self.reload(STUDENTS)
        if ok:
            self.activity.emit("delete_student", "student", student_id, "deleted")
        return ok

    # ---------------- Users ----------------
    def add_user(self, name: str, email: str, role: Role, station_id: str | None = None) -> str | None:
        if not (name or "").strip():
            raise ValidationError("Name is required.", "name")
        update = UserUpdate(name=name, email=email or "", role=role, station_id=station_id)
        fields = update.to_fields()
        try:
            uid = self.store.create(USERS, fields)
        except StoreError as e:
            self.err_logger.log_exception(e, "add_user")
            return None
        self.reload(USERS)
        self.activity.emit("add_user", "user", uid, f"{fields['name']} <{fields['email']}>")
        return uid

    def update_user(self, user_id: str, update: UserUpdate) -> bool:
        fields = update.to_fields()
        try:
            ok = self.store.update(USERS, user_id, fields)
        except StoreError as e:
            self.err_logger.log_exception(e, "update_user")
            return False
        self.reload(USERS)
        if ok:
            self.activity.emit("edit_user", "user", user_id, str(fields))
        return ok

    def delete_user(self, user_id: str) -> bool:
        try:
            ok = self.store.delete(USERS, user_id)
        except StoreError as e:
            self.err_logger.log_exception(e, "delete_user")
            return False
        self.reload(USERS)
        if ok:
            self.activity.emit("delete_user", "user", user_id, "deleted")
        return ok

    # ---------------- Payments ----------------
    def record_payment(self, session: Session | None, student_id: str, day: date, status: PaymentStatus) -> Payment | None:
        """Set the status for (student, day), overwriting an existing record.

        Without an open session this does nothing. The student and the
        acting user's station are not checked.
        """
        if session is None or not session.is_open:
            return None
        acting_user = session.user
        try:
            # Look up against the store, not the snapshot, so a record made by
            # another session is overwritten rather than duplicated.
            current = [Payment.from_dict(r) for r in self.store.list(PAYMENTS)]
            plan = plan_payment(current, student_id, day, status, acting_user, self.clock())
            if plan.existing_id is not None:
                pid = plan.existing_id
                if not self.store.update(PAYMENTS, pid, plan.fields):
                    pid = self.store.create(PAYMENTS, {**plan.fields, "studentId": student_id, "date": day.isoformat()})
            else:
                pid = self.store.create(PAYMENTS, plan.fields)
        except StoreError as e:
            self.err_logger.log_exception(e, "record_payment")
            return None
        self.reload(PAYMENTS)
        self.activity.emit("record_payment", "student", student_id, f"{day.isoformat()}: {status.label}")
        return next((p for p in self.payments if p.id == pid), None)
