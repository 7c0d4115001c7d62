"""
In-memory stand-in for the Supabase client.

Supports the query-builder subset the repositories use (select / insert /
update with eq, neq, in_, lt, lte, gt, gte, order, limit, range), a storage
bucket, and the `redeem_buy_code` RPC. Every execute() runs under one lock,
so the RPC is serialized the same way the row locks serialize it in Postgres.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from domain.time import parse_utc_datetime

PRIMARY_KEYS = {
    "vehicles": "vehicle_id",
    "buy_codes": "buy_code_id",
    "offers": "offer_id",
    "offer_activities": "activity_id",
    "transactions": "transaction_id",
    "dealers": "dealer_id",
}

UNIQUE_COLUMNS = {
    "dealers": ("username",),
    "buy_codes": ("code",),
}

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin-password"


@dataclass
class FakeResponse:
    data: Any
    error: Any = None
    count: Optional[int] = None


def _comparable(column: str, value: Any) -> Any:
    if column.endswith("_utc") and isinstance(value, str):
        return parse_utc_datetime(value)
    return value


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self._db = db
        self._table = table
        self._op = "select"
        self._payload: Any = None
        self._filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._orders: List[tuple[str, bool]] = []
        self._limit: Optional[int] = None
        self._range: Optional[tuple[int, int]] = None

    # operations
    def select(self, *columns: str, count: Optional[str] = None) -> "FakeQuery":
        self._op = "select"
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self._op = "insert"
        self._payload = payload
        return self

    def update(self, payload: Dict[str, Any]) -> "FakeQuery":
        self._op = "update"
        self._payload = payload
        return self

    # filters
    def _where(self, column: str, test: Callable[[Any, Any], bool], value: Any) -> "FakeQuery":
        expected = _comparable(column, value)

        def check(row: Dict[str, Any]) -> bool:
            actual = row.get(column)
            if actual is None:
                return False
            return test(_comparable(column, actual), expected)

        self._filters.append(check)
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        return self._where(column, lambda a, b: a == b, value)

    def neq(self, column: str, value: Any) -> "FakeQuery":
        return self._where(column, lambda a, b: a != b, value)

    def lt(self, column: str, value: Any) -> "FakeQuery":
        return self._where(column, lambda a, b: a < b, value)

    def lte(self, column: str, value: Any) -> "FakeQuery":
        return self._where(column, lambda a, b: a <= b, value)

    def gt(self, column: str, value: Any) -> "FakeQuery":
        return self._where(column, lambda a, b: a > b, value)

    def gte(self, column: str, value: Any) -> "FakeQuery":
        return self._where(column, lambda a, b: a >= b, value)

    def in_(self, column: str, values: List[Any]) -> "FakeQuery":
        allowed = list(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    # shaping
    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._orders.append((column, desc))
        return self

    def limit(self, count: int) -> "FakeQuery":
        self._limit = count
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self._range = (start, end)
        return self

    def execute(self) -> FakeResponse:
        with self._db.lock:
            if self._op == "insert":
                return self._db.insert_rows(self._table, self._payload)

            rows = [row for row in self._db.tables[self._table] if all(f(row) for f in self._filters)]

            if self._op == "update":
                for row in rows:
                    row.update(copy.deepcopy(self._payload))
                return FakeResponse(data=[copy.deepcopy(r) for r in rows])

            for column, desc in reversed(self._orders):
                present = [r for r in rows if r.get(column) is not None]
                missing = [r for r in rows if r.get(column) is None]
                present.sort(key=lambda r: _comparable(column, r[column]), reverse=desc)
                # Postgres: NULLS LAST ascending, NULLS FIRST descending
                rows = missing + present if desc else present + missing
            total = len(rows)
            if self._range is not None:
                rows = rows[self._range[0]:self._range[1] + 1]
            if self._limit is not None:
                rows = rows[:self._limit]
            return FakeResponse(data=[copy.deepcopy(r) for r in rows], count=total)


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]) -> None:
        self._db = db
        self._name = name
        self._params = params

    def execute(self) -> FakeResponse:
        handler = getattr(self._db, f"_rpc_{self._name}")
        with self._db.lock:
            return FakeResponse(data=handler(self._params))


class FakeBucket:
    def __init__(self, name: str, files: Dict[str, tuple[bytes, Dict[str, str]]]) -> None:
        self.name = name
        self.files = files

    def upload(self, path: str, data: bytes, file_options: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        self.files[f"{self.name}/{path}"] = (data, dict(file_options or {}))
        return {"path": path}

    def get_public_url(self, path: str) -> str:
        return f"https://storage.test/{self.name}/{path}"

    def create_signed_upload_url(self, path: str) -> Dict[str, str]:
        return {
            "signed_url": f"https://storage.test/upload/sign/{self.name}/{path}?token=signed-token",
            "token": "signed-token",
            "path": path,
        }


class FakeStorage:
    def __init__(self) -> None:
        self.files: Dict[str, tuple[bytes, Dict[str, str]]] = {}

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(bucket, self.files)


class FakeSupabase:
    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.tables: Dict[str, List[Dict[str, Any]]] = {name: [] for name in PRIMARY_KEYS}
        self._next_ids: Dict[str, int] = {name: 1 for name in PRIMARY_KEYS}
        self.storage = FakeStorage()
        self.rpc_calls: List[tuple[str, Dict[str, Any]]] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeRpc:
        self.rpc_calls.append((name, dict(params)))
        return FakeRpc(self, name, params)

    def insert_rows(self, table: str, payload: Any) -> FakeResponse:
        rows = payload if isinstance(payload, list) else [payload]
        for column in UNIQUE_COLUMNS.get(table, ()):
            taken = {r.get(column) for r in self.tables[table]}
            if any(row.get(column) in taken for row in rows):
                return FakeResponse(data=None, error={"code": "23505", "message": f"duplicate {column}"})

        created = []
        for row in rows:
            stored = copy.deepcopy(row)
            key = PRIMARY_KEYS[table]
            stored[key] = self._next_ids[table]
            self._next_ids[table] += 1
            self.tables[table].append(stored)
            created.append(copy.deepcopy(stored))
        return FakeResponse(data=created)

    def add_row(self, table: str, **values: Any) -> Dict[str, Any]:
        """Seed a row directly; returns the stored row (with its ID)."""
        with self.lock:
            return self.insert_rows(table, values).data[0]

    def row(self, table: str, row_id: int) -> Optional[Dict[str, Any]]:
        key = PRIMARY_KEYS[table]
        for r in self.tables[table]:
            if r[key] == row_id:
                return r
        return None

    # Mirrors sql/redeem_buy_code.sql
    def _rpc_redeem_buy_code(self, params: Dict[str, Any]) -> Dict[str, Any]:
        def fail(kind: str) -> Dict[str, Any]:
            return {"success": False, "error": kind, "message": kind}

        redeemed_at = params["p_redeemed_at"]
        now = parse_utc_datetime(redeemed_at)
        code = str(params["p_code"]).strip().upper()

        buy_code = next((r for r in self.tables["buy_codes"] if r["code"] == code), None)
        if buy_code is None:
            return fail("code_not_found")
        if not buy_code["active"]:
            return fail("code_inactive")
        if buy_code.get("max_uses") is not None and buy_code["usage_count"] >= buy_code["max_uses"]:
            return fail("code_exhausted")
        if buy_code.get("expires_at_utc") and now >= parse_utc_datetime(buy_code["expires_at_utc"]):
            return fail("code_expired")

        dealer = self.row("dealers", buy_code["dealer_id"])
        if dealer is None or not dealer.get("active"):
            return fail("dealer_inactive")

        vehicle = self.row("vehicles", params["p_vehicle_id"])
        if vehicle is None:
            return fail("vehicle_not_found")
        if vehicle["status"] == "sold" or vehicle.get("price") is None:
            return fail("vehicle_unavailable")

        transaction = self.insert_rows("transactions", {
            "vehicle_id": vehicle["vehicle_id"],
            "dealer_id": buy_code["dealer_id"],
            "buy_code_id": buy_code["buy_code_id"],
            "amount": vehicle["price"],
            "status": "pending",
            "is_paid": False,
            "bill_of_sale": None,
            "created_at_utc": redeemed_at,
        }).data[0]
        buy_code["usage_count"] += 1
        vehicle.update({"status": "sold", "in_queue": False, "updated_at_utc": redeemed_at})
        return {"success": True, "transaction": transaction}


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------

def seed_dealer(db: FakeSupabase, username: str = "metro", active: bool = True,
                password_hash: str = "not-a-real-hash", **extra: Any) -> Dict[str, Any]:
    return db.add_row(
        "dealers",
        username=username,
        password_hash=password_hash,
        dealer_name=extra.pop("dealer_name", "Metro Auto"),
        email=extra.pop("email", f"{username}@example.com"),
        active=active,
        created_at_utc=NOW.isoformat(),
        **extra,
    )


def seed_vehicle(db: FakeSupabase, vin: str = "1HGCM82633A004352", status: str = "active",
                 price: Optional[str] = "15000", in_queue: bool = False, **extra: Any) -> Dict[str, Any]:
    values = {
        "vin": vin,
        "status": status,
        "in_queue": in_queue,
        "price": price,
        "year": 2020,
        "make": "Honda",
        "model": "Accord",
        "images": [],
        "videos": [],
        "inspection_status": "pending",
        "created_at_utc": NOW.isoformat(),
        "updated_at_utc": NOW.isoformat(),
    }
    values.update(extra)
    return db.add_row("vehicles", **values)


def seed_buy_code(db: FakeSupabase, dealer_id: int, code: str = "ABCD1234", active: bool = True,
                  max_uses: Optional[int] = None, usage_count: int = 0,
                  expires_at_utc: Optional[str] = None) -> Dict[str, Any]:
    return db.add_row(
        "buy_codes",
        code=code,
        dealer_id=dealer_id,
        active=active,
        max_uses=max_uses,
        usage_count=usage_count,
        expires_at_utc=expires_at_utc,
        created_at_utc=NOW.isoformat(),
    )
