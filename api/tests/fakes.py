"""In-memory stand-in for a cassandra-asyncio session.

Understands the statement shapes the services prepare:

- ``SELECT ... FROM t [WHERE a = ? AND b = ?]``
- ``INSERT INTO t (...) VALUES (...) [IF NOT EXISTS] [USING TTL n|?]``
- ``UPDATE t [USING TTL n|?] SET a = ?, ... WHERE ... [IF EXISTS | IF c = ? AND ...]``
- ``DELETE FROM t WHERE ... [IF c = ? AND ...]``

Each statement runs atomically, like a lightweight transaction, and yields
to the event loop first so concurrent callers interleave between
statements. TTLs run on a virtual clock moved with ``advance``.
"""

import asyncio
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from src.auth.permissions import PrincipalKind
from src.auth.security import create_access_token, hash_password


PRIMARY_KEYS: dict[str, tuple[str, ...]] = {
    "principals": ("id",),
    "principals_by_kind": ("kind", "email"),
    "courses": ("code",),
    "enrollments": ("student_id", "course_code"),
    "payments": ("student_id", "course_code"),
}

_SELECT = re.compile(
    r"^SELECT (?P<cols>.+?) FROM (?P<table>[\w.]+)(?: WHERE (?P<where>.+))?$", re.I
)
_INSERT = re.compile(
    r"^INSERT INTO (?P<table>[\w.]+) \((?P<cols>[^)]+)\) VALUES \((?P<vals>[^)]+)\)"
    r"(?P<ine> IF NOT EXISTS)?(?: USING TTL (?P<ttl>\?|\d+))?$",
    re.I,
)
_UPDATE = re.compile(
    r"^UPDATE (?P<table>[\w.]+)(?: USING TTL (?P<ttl>\?|\d+))? SET (?P<set>.+?)"
    r" WHERE (?P<where>.+?)(?: IF (?P<cond>.+))?$",
    re.I,
)
_DELETE = re.compile(
    r"^DELETE FROM (?P<table>[\w.]+) WHERE (?P<where>.+?)(?: IF (?P<cond>.+))?$", re.I
)


def normalize(query: str) -> str:
    return " ".join(query.split())


class FakeRow:
    """Attribute access over a dict; unknown columns read as None."""

    def __init__(self, values: dict[str, Any]):
        self._values = dict(values)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return self._values.get(name)

    def __repr__(self) -> str:
        return f"FakeRow({self._values!r})"


class FakeResult:
    """Subset of ``ResultSet`` used by the services."""

    def __init__(self, rows: list[FakeRow] | None = None, applied: bool = True):
        self._rows = rows or []
        self.was_applied = applied

    def one(self) -> FakeRow | None:
        return self._rows[0] if self._rows else None

    def all(self) -> list[FakeRow]:
        return list(self._rows)

    def __iter__(self):
        return iter(self._rows)


@dataclass
class FakePrepared:
    query_string: str


@dataclass
class _Failure:
    fragment: str
    error: BaseException
    times: int
    after_apply: bool
    delay: float


@dataclass
class _Stored:
    values: dict[str, Any]
    expires_at: float | None = None


@dataclass
class FakeCassandraSession:
    """Tables keyed by name (keyspace prefix dropped), rows keyed by primary key."""

    tables: dict[str, dict[tuple, _Stored]] = field(default_factory=dict)
    executed: list[tuple[str, list[Any]]] = field(default_factory=list)
    clock: float = 0.0
    _failures: list[_Failure] = field(default_factory=list)

    # ------------------------------------------------------------------ setup

    def prepare(self, query: str) -> FakePrepared:
        return FakePrepared(normalize(query))

    def fail_on(
        self,
        fragment: str,
        error: BaseException | None = None,
        times: int = 1,
        after_apply: bool = False,
        delay: float = 0.0,
    ) -> None:
        """Make the next ``times`` statements containing ``fragment`` fail.

        ``after_apply`` applies the statement before raising (a write whose
        acknowledgement was lost). ``delay`` sleeps instead of raising when no
        error is given.
        """
        self._failures.append(
            _Failure(normalize(fragment), error, times, after_apply, delay)
        )

    def advance(self, seconds: float) -> None:
        """Move the TTL clock forward."""
        self.clock += seconds

    def put(self, table: str, **values: Any) -> None:
        """Seed a row directly."""
        key = tuple(values[k] for k in PRIMARY_KEYS[table])
        self._table(table)[key] = _Stored(dict(values))

    def rows(self, table: str) -> list[dict[str, Any]]:
        """Live rows of a table, as dicts."""
        return [dict(s.values) for s in self._live(table).values()]

    def count(self, fragment: str) -> int:
        """How many executed statements contain ``fragment``."""
        fragment = normalize(fragment)
        return sum(1 for q, _ in self.executed if fragment in q)

    # -------------------------------------------------------------- execution

    async def aexecute(self, statement: Any, params: Sequence[Any] | None = None):
        await asyncio.sleep(0)
        query = (
            statement.query_string
            if isinstance(statement, FakePrepared)
            else normalize(str(statement))
        )
        values = list(params or [])
        self.executed.append((query, values))

        failure = self._take_failure(query)
        if failure is not None:
            if failure.error is None:
                await asyncio.sleep(failure.delay)
            elif failure.after_apply:
                self._run(query, values)
                raise failure.error
            else:
                raise failure.error
        return self._run(query, values)

    def _take_failure(self, query: str) -> _Failure | None:
        for failure in self._failures:
            if failure.fragment in query and failure.times > 0:
                failure.times -= 1
                return failure
        return None

    def _run(self, query: str, values: list[Any]) -> FakeResult:
        upper = query.upper()
        if upper.startswith(("CREATE", "ALTER", "DROP")):
            return FakeResult()
        if "SYSTEM.LOCAL" in upper:
            return FakeResult([FakeRow({"release_version": "4.1.0"})])
        if upper.startswith("SELECT"):
            return self._select(query, values)
        if upper.startswith("INSERT"):
            return self._insert(query, values)
        if upper.startswith("UPDATE"):
            return self._update(query, values)
        if upper.startswith("DELETE"):
            return self._delete(query, values)
        msg = f"Unsupported statement: {query}"
        raise AssertionError(msg)

    # ---------------------------------------------------------------- helpers

    @staticmethod
    def _name(table: str) -> str:
        return table.split(".")[-1]

    def _table(self, name: str) -> dict[tuple, _Stored]:
        return self.tables.setdefault(self._name(name), {})

    def _live(self, name: str) -> dict[tuple, _Stored]:
        table = self._table(name)
        for key in [
            k
            for k, s in table.items()
            if s.expires_at is not None and s.expires_at <= self.clock
        ]:
            del table[key]
        return table

    @staticmethod
    def _columns(clause: str) -> list[str]:
        # "a = ? AND b = ?" or "a = ?, b = ?"
        parts = re.split(r"\s+AND\s+|,\s*", clause.strip(), flags=re.I)
        return [p.split("=")[0].strip() for p in parts if p.strip()]

    def _key(self, table: str, criteria: dict[str, Any]) -> tuple:
        return tuple(criteria[k] for k in PRIMARY_KEYS[self._name(table)])

    @staticmethod
    def _ttl(token: str | None, values: list[Any]) -> int | None:
        if token is None:
            return None
        if token == "?":
            return int(values.pop(0))
        return int(token)

    def _expiry(self, ttl: int | None) -> float | None:
        return self.clock + ttl if ttl else None

    @staticmethod
    def _matches(stored: _Stored | None, cond: dict[str, Any]) -> bool:
        return stored is not None and all(
            stored.values.get(k) == v for k, v in cond.items()
        )

    @staticmethod
    def _current(stored: _Stored | None) -> list[FakeRow]:
        return [FakeRow(stored.values)] if stored is not None else []

    # ------------------------------------------------------------- statements

    def _select(self, query: str, values: list[Any]) -> FakeResult:
        m = _SELECT.match(query)
        assert m, query
        criteria = dict(zip(self._columns(m["where"] or ""), values, strict=False))
        table = self._live(m["table"])
        rows = [
            FakeRow(table[k].values)
            for k in sorted(table, key=lambda k: tuple(str(p) for p in k))
            if all(table[k].values.get(c) == v for c, v in criteria.items())
        ]
        return FakeResult(rows)

    def _insert(self, query: str, values: list[Any]) -> FakeResult:
        m = _INSERT.match(query)
        assert m, query
        cols = [c.strip() for c in m["cols"].split(",")]
        row = dict(zip(cols, values[: len(cols)], strict=True))
        rest = values[len(cols) :]
        ttl = self._ttl(m["ttl"], rest)

        table = self._live(m["table"])
        key = self._key(m["table"], row)
        existing = table.get(key)
        if m["ine"]:
            if existing is not None:
                return FakeResult(self._current(existing), applied=False)
            table[key] = _Stored(row, self._expiry(ttl))
            return FakeResult(applied=True)

        if existing is None:
            table[key] = _Stored(row, self._expiry(ttl))
        else:
            existing.values.update(row)
            existing.expires_at = self._expiry(ttl)
        return FakeResult()

    def _update(self, query: str, values: list[Any]) -> FakeResult:
        m = _UPDATE.match(query)
        assert m, query
        ttl = self._ttl(m["ttl"], values)
        set_cols = self._columns(m["set"])
        where_cols = self._columns(m["where"])
        changes = dict(zip(set_cols, values, strict=False))
        values = values[len(set_cols) :]
        criteria = dict(zip(where_cols, values, strict=False))
        values = values[len(where_cols) :]

        table = self._live(m["table"])
        key = self._key(m["table"], criteria)
        stored = table.get(key)
        cond_clause = (m["cond"] or "").strip()
        lwt = bool(cond_clause)

        if cond_clause.upper() == "EXISTS":
            if stored is None:
                return FakeResult(applied=False)
        elif cond_clause:
            cond = dict(zip(self._columns(cond_clause), values, strict=False))
            if not self._matches(stored, cond):
                return FakeResult(self._current(stored), applied=False)

        if stored is None:
            stored = _Stored(dict(criteria))
            table[key] = stored
        stored.values.update(changes)
        if ttl is not None:
            stored.expires_at = self._expiry(ttl)
        return FakeResult(applied=True) if lwt else FakeResult()

    def _delete(self, query: str, values: list[Any]) -> FakeResult:
        m = _DELETE.match(query)
        assert m, query
        where_cols = self._columns(m["where"])
        criteria = dict(zip(where_cols, values, strict=False))
        values = values[len(where_cols) :]

        table = self._live(m["table"])
        key = self._key(m["table"], criteria)
        stored = table.get(key)
        if m["cond"]:
            cond = dict(zip(self._columns(m["cond"]), values, strict=False))
            if not self._matches(stored, cond):
                return FakeResult(self._current(stored), applied=False)
            del table[key]
            return FakeResult(applied=True)

        table.pop(key, None)
        return FakeResult()


# ==============================================================================
# Seeding helpers
# ==============================================================================


def seed_principal(
    session: FakeCassandraSession,
    kind: PrincipalKind,
    email: str,
    name: str = "Someone",
    password: str = "Secret123",
    department: str | None = None,
    is_active: bool = True,
    password_hash: str | None = None,
) -> UUID:
    """Insert a principal and its directory entry; returns the id."""
    principal_id = uuid4()
    now = datetime.now(UTC)
    stored = password_hash if password_hash is not None else hash_password(password)
    session.put(
        "principals",
        id=principal_id,
        kind=kind.value,
        email=email,
        name=name,
        password_hash=stored,
        phone=None,
        department=department,
        is_active=is_active,
        created_at=now,
        updated_at=None,
        last_login_at=None,
    )
    session.put(
        "principals_by_kind",
        kind=kind.value,
        email=email,
        principal_id=principal_id,
        name=name,
        department=department,
        is_active=is_active,
        created_at=now,
    )
    return principal_id


def seed_course(
    session: FakeCassandraSession,
    code: str,
    title: str = "A Course",
    price: str = "10.00",
    instructor_id: UUID | None = None,
    instructor_name: str | None = None,
    duration_weeks: int = 4,
    is_active: bool = True,
) -> str:
    """Insert a catalog row; returns the code."""
    session.put(
        "courses",
        code=code,
        title=title,
        description=f"{title} description",
        price=Decimal(price),
        duration_weeks=duration_weeks,
        instructor_id=instructor_id,
        instructor_name=instructor_name,
        category="general",
        is_active=is_active,
        created_at=datetime.now(UTC),
        updated_at=None,
    )
    return code


def bearer(principal_id: UUID, kind: PrincipalKind, email: str = "x@test.com") -> dict:
    """Authorization header for a principal."""
    token = create_access_token(str(principal_id), kind, email)
    return {"Authorization": f"Bearer {token}"}


def seed_enrollment(
    session: FakeCassandraSession,
    student_id: UUID,
    course_code: str,
    progress: int = 0,
    status: str = "active",
    amount: str = "10.00",
    method: str | None = "credit_card",
    enrolled_at: datetime | None = None,
) -> UUID:
    """Insert an enrollment (and its payment when ``method`` is set); returns its id."""
    enrollment_id = uuid4()
    when = enrolled_at or datetime.now(UTC)
    session.put(
        "enrollments",
        student_id=student_id,
        course_code=course_code,
        enrollment_id=enrollment_id,
        status=status,
        enrolled_at=when,
        amount_paid=Decimal(amount),
        progress_percentage=progress,
        is_completed=progress >= 100,
        completion_date=when if progress >= 100 else None,
        last_progress_key=None,
        updated_at=None,
    )
    if method is not None:
        session.put(
            "payments",
            student_id=student_id,
            course_code=course_code,
            payment_id=uuid4(),
            enrollment_id=enrollment_id,
            amount=Decimal(amount),
            method=method,
            status="completed",
            paid_at=when,
        )
    return enrollment_id
