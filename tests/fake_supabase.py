"""
In-memory stand-in for the Supabase client used by the tests.

Only the slice of the PostgREST query builder that the app uses is
implemented: select/insert/update/upsert/delete, the filters eq, is_,
not_, ilike, in_, or_ (ilike only), order, range, limit, maybe_single/single
and count="exact". auth.admin covers list_users, invite_user_by_email and
update_user_by_id. Embedded resources in select strings ("member:members(*)",
"event_attendance(count)") are ignored.
"""
import re
import uuid
from copy import deepcopy
from types import SimpleNamespace

from postgrest.exceptions import APIError
from supabase import AuthError


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


def _ilike(value, pattern):
    if value is None:
        return False
    regex = "".join(".*" if ch == "%" else re.escape(ch) for ch in pattern)
    return re.fullmatch(regex, str(value), flags=re.IGNORECASE | re.DOTALL) is not None


def _project(row, columns):
    cols = [c.strip() for c in re.sub(r"[\w!:]+\([^)]*\)", "", columns).split(",")]
    cols = [c for c in cols if c]
    if not cols or "*" in cols:
        return deepcopy(row)
    return {c: row.get(c) for c in cols}


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = None
        self.payload = None
        self.columns = "*"
        self.count_mode = None
        self.on_conflict = None
        self.filters = []
        self.orders = []
        self.range_ = None
        self.limit_ = None
        self.single_mode = None
        self._negate = False
        self.eqs = {}

    # ----- operations -----
    def select(self, columns="*", count=None):
        self.op = self.op or "select"
        self.columns = columns
        self.count_mode = count
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def upsert(self, payload, on_conflict=None):
        self.op, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def delete(self):
        self.op = "delete"
        return self

    # ----- filters -----
    def _add(self, pred):
        if self._negate:
            inner = pred
            pred = lambda r: not inner(r)  # noqa: E731
            self._negate = False
        self.filters.append(pred)
        return self

    @property
    def not_(self):
        self._negate = True
        return self

    def eq(self, col, value):
        self.eqs[col] = value
        return self._add(lambda r: r.get(col) == value)

    def is_(self, col, value):
        if value in (None, "null"):
            return self._add(lambda r: r.get(col) is None)
        return self._add(lambda r: r.get(col) is value)

    def ilike(self, col, pattern):
        return self._add(lambda r: _ilike(r.get(col), pattern))

    def in_(self, col, values):
        values = list(values)
        return self._add(lambda r: r.get(col) in values)

    def or_(self, expr):
        parts = []
        for part in expr.split(","):
            col, op, pattern = part.split(".", 2)
            assert op == "ilike"
            parts.append((col, pattern))
        return self._add(lambda r: any(_ilike(r.get(c), p) for c, p in parts))

    def order(self, col, desc=False):
        self.orders.append((col, desc))
        return self

    def range(self, start, end):
        self.range_ = (start, end)
        return self

    def limit(self, n):
        self.limit_ = n
        return self

    def maybe_single(self):
        self.single_mode = "maybe"
        return self

    def single(self):
        self.single_mode = "single"
        return self

    # ----- execution -----
    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        self.db.calls.append(self)
        self.db.check_failures(self)
        rows = self.db.tables.setdefault(self.table, [])
        return getattr(self, "_exec_" + self.op)(rows)

    def _exec_select(self, rows):
        matched = [r for r in rows if self._matches(r)]
        for col, desc in reversed(self.orders):
            matched.sort(
                key=lambda r: (r.get(col) is None, r.get(col) if r.get(col) is not None else 0),
                reverse=desc,
            )
        total = len(matched)
        if self.range_ is not None:
            start, end = self.range_
            matched = matched[start:end + 1]
        if self.limit_ is not None:
            matched = matched[: self.limit_]
        data = [_project(r, self.columns) for r in matched]
        count = total if self.count_mode == "exact" else None

        if self.single_mode == "maybe":
            if not data:
                return None
            return FakeResponse(data[0], count)
        if self.single_mode == "single":
            if len(data) != 1:
                raise APIError({"message": "JSON object requested, multiple (or no) rows returned", "code": "PGRST116"})
            return FakeResponse(data[0], count)
        return FakeResponse(data, count)

    def _exec_insert(self, rows):
        payload = self.payload if isinstance(self.payload, list) else [self.payload]
        inserted = []
        for item in payload:
            row = deepcopy(item)
            row.setdefault("id", str(uuid.uuid4()))
            self.db.check_unique(self.table, row)
            rows.append(row)
            inserted.append(deepcopy(row))
        return FakeResponse(inserted)

    def _exec_update(self, rows):
        updated = []
        for row in rows:
            if self._matches(row):
                row.update(deepcopy(self.payload))
                updated.append(deepcopy(row))
        return FakeResponse(updated)

    def _exec_upsert(self, rows):
        payload = self.payload if isinstance(self.payload, list) else [self.payload]
        keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
        out = []
        for item in payload:
            existing = next(
                (r for r in rows if all(r.get(k) == item.get(k) for k in keys)), None
            )
            if existing is not None:
                existing.update(deepcopy(item))
                out.append(deepcopy(existing))
            else:
                row = deepcopy(item)
                row.setdefault("id", str(uuid.uuid4()))
                rows.append(row)
                out.append(deepcopy(row))
        return FakeResponse(out)

    def _exec_delete(self, rows):
        removed = [r for r in rows if self._matches(r)]
        self.db.tables[self.table] = [r for r in rows if not self._matches(r)]
        return FakeResponse(removed)


class FakeAuthError(AuthError):
    """AuthError dengan konstruktor sederhana (signature asli beda antar versi)."""

    def __init__(self, message, status=400, code=None):
        Exception.__init__(self, message)
        self.message = message
        self.status = status
        self.code = code
        self.name = "AuthApiError"


class FakeAuthAdmin:
    def __init__(self):
        self.users = []
        self.invites = []
        self.password_updates = []
        self.invite_error = None
        self.update_error = None

    def list_users(self, page=None, per_page=None):
        return list(self.users)

    def invite_user_by_email(self, email, options=None):
        self.invites.append((email, dict(options or {})))
        if self.invite_error:
            raise FakeAuthError(self.invite_error)
        user = SimpleNamespace(id=str(uuid.uuid4()), email=email)
        self.users.append(user)
        return SimpleNamespace(user=user)

    def update_user_by_id(self, uid, attributes):
        if self.update_error:
            raise FakeAuthError(self.update_error)
        self.password_updates.append((uid, dict(attributes)))
        return SimpleNamespace(user=SimpleNamespace(id=uid))


class FakeAuth:
    def __init__(self):
        self.tokens = {}
        self.admin = FakeAuthAdmin()

    def get_user(self, token):
        user = self.tokens.get(token)
        if user is None:
            raise Exception("invalid JWT")
        return SimpleNamespace(user=user)


class FakeSupabase:
    # (table, columns) yang unik, meniru constraint di database
    UNIQUE = {
        "event_attendance": ("event_id", "member_id"),
        "event_registrations": ("event_id", "member_id"),
    }

    def __init__(self, tables=None):
        self.tables = {k: [dict(r) for r in v] for k, v in (tables or {}).items()}
        self.calls = []
        self.failures = []
        self.auth = FakeAuth()

    def table(self, name):
        return FakeQuery(self, name)

    from_ = table

    # ----- helpers for tests -----
    def add_user(self, token, user_id, role=None, email=None):
        user = SimpleNamespace(id=user_id, email=email or f"{user_id}@example.com")
        self.auth.tokens[token] = user
        self.auth.admin.users.append(user)
        if role:
            self.tables.setdefault("user_roles", []).append({"user_id": user_id, "role": role})

    def fail_when(self, table, op, predicate=None, message="boom", code="XX000"):
        """Raise APIError for matching queries. predicate gets the FakeQuery."""
        self.failures.append((table, op, predicate, message, code))

    def check_failures(self, query):
        for table, op, predicate, message, code in self.failures:
            if table == query.table and op == query.op and (predicate is None or predicate(query)):
                raise APIError({"message": message, "code": code})

    def check_unique(self, table, row):
        cols = self.UNIQUE.get(table)
        if not cols:
            return
        for other in self.tables.get(table, []):
            if all(other.get(c) == row.get(c) for c in cols):
                raise APIError({"message": "duplicate key value violates unique constraint", "code": "23505"})

    def calls_for(self, table, op=None):
        return [c for c in self.calls if c.table == table and (op is None or c.op == op)]
