"""
Shared fixtures: an in-memory stand-in for the Supabase query builder, a
scripted completion endpoint, and a TestClient wired to both through
FastAPI dependency overrides.
"""

import json
import re
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from resume_analyzer.analyzer import ResumeAnalyzer
from resume_analyzer.config import Settings
from resume_analyzer.main import app
from resume_analyzer.routes import get_analyzer, get_optional_store, get_settings
from resume_analyzer.store import SupabaseStore

# Embedded relation → foreign key on the queried table
JOIN_KEYS = {"job_descriptions": "job_id", "users": "user_id"}
EPOCH = datetime(2024, 1, 1)


class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]]):
        self.data = data


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.filters: List[tuple] = []
        self.order_by: Optional[tuple] = None
        self.limit_n: Optional[int] = None

    def select(self, columns: str = "*"):
        self.op = "select"
        self.columns = columns
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def upsert(self, payload, on_conflict: str = "id"):
        self.op = "upsert"
        self.payload = payload
        self.on_conflict = on_conflict
        return self

    def update(self, payload):
        self.op = "update"
        self.payload = payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column: str, value):
        self.filters.append((column, value))
        return self

    def order(self, column: str, desc: bool = False):
        self.order_by = (column, desc)
        return self

    def limit(self, n: int):
        self.limit_n = n
        return self

    def _matches(self, row: Dict[str, Any]) -> bool:
        return all(str(row.get(col)) == str(val) for col, val in self.filters)

    def execute(self) -> FakeResponse:
        self.db.executed.append((self.table, self.op))
        if self.db.latency:
            time.sleep(self.db.latency)
        if (self.table, self.op) in self.db.failures:
            raise RuntimeError(f"simulated {self.op} failure on {self.table}")

        rows = self.db.tables.setdefault(self.table, [])
        if self.op == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            return FakeResponse([dict(self.db.new_row(self.table, item)) for item in items])

        if self.op == "upsert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            out = []
            for item in items:
                existing = next(
                    (r for r in rows if r.get(self.on_conflict) == item.get(self.on_conflict)), None
                )
                if existing is not None:
                    existing.update(item)
                    out.append(dict(existing))
                else:
                    out.append(dict(self.db.new_row(self.table, item)))
            return FakeResponse(out)

        matched = [r for r in rows if self._matches(r)]

        if self.op == "update":
            for r in matched:
                r.update(self.payload)
            return FakeResponse([dict(r) for r in matched])

        if self.op == "delete":
            self.db.tables[self.table] = [r for r in rows if not self._matches(r)]
            return FakeResponse([dict(r) for r in matched])

        result = [dict(r) for r in matched]
        for relation in re.findall(r"(\w+)!inner", self.columns):
            key = JOIN_KEYS[relation]
            joined = []
            for r in result:
                other = next(
                    (o for o in self.db.tables.get(relation, []) if o.get("id") == r.get(key)), None
                )
                if other is not None:
                    r[relation] = dict(other)
                    joined.append(r)
            result = joined
        if self.order_by:
            column, desc = self.order_by
            result.sort(key=lambda r: r.get(column) or "", reverse=desc)
        if self.limit_n is not None:
            result = result[: self.limit_n]
        return FakeResponse(result)


class FakeSupabase:
    """Implements the slice of supabase.Client the store uses."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failures: set = set()
        self.executed: List[tuple] = []
        self.latency = 0.0
        self._counter = 0

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def new_row(self, table: str, item: Dict[str, Any]) -> Dict[str, Any]:
        self._counter += 1
        row = {
            "id": f"{table}-{self._counter}",
            "created_at": (EPOCH + timedelta(seconds=self._counter)).isoformat(),
        }
        row.update(item)
        self.tables.setdefault(table, []).append(row)
        return row


class ScriptedLLM:
    """MockTransport handler standing in for the chat-completions endpoint."""

    def __init__(self):
        self.reply = json.dumps(
            {
                "skillsMatchPercentage": 82,
                "matchedSkills": ["Python", "FastAPI"],
                "missingSkills": ["Kubernetes"],
                "improvementSuggestions": ["Quantify API latency improvements"],
                "overallFeedback": "Strong backend profile.",
                "strengths": ["API design"],
                "weaknesses": ["No container orchestration"],
            }
        )
        self.status_code = 200
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="upstream unavailable")
        return httpx.Response(200, json={"choices": [{"message": {"content": self.reply}}]})

    @property
    def last_body(self) -> Dict[str, Any]:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openrouter_api_key="test-key",
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
    )


@pytest.fixture
def fake_db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def store(fake_db) -> SupabaseStore:
    return SupabaseStore(fake_db)


@pytest.fixture
def llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def analyzer(settings, llm) -> ResumeAnalyzer:
    return ResumeAnalyzer(settings, transport=httpx.MockTransport(llm))


@pytest.fixture
def client(settings, store, analyzer):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_optional_store] = lambda: store
    app.dependency_overrides[get_analyzer] = lambda: analyzer
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin(store):
    user = store.upsert_user("admin-1", "admin@example.com", "Ada Admin")
    store.client.tables["users"][-1]["isAdmin"] = True
    return user
