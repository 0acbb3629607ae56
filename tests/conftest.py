"""
Shared test fixtures.

The Supabase mock keeps rows per table and applies eq/neq/in_ filters,
ordering and limits, so services can be tested against realistic reads
and writes.
"""

import os
import sys
from pathlib import Path

# Settings are loaded at import time
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

# Add project root to Python path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

import copy
import pytest
from unittest.mock import patch
from datetime import datetime, timezone
from typing import Generator, Optional
from uuid import uuid4

from tests.factories import (
    CatalogProductFactory,
    ConfigurationFactory,
    MappingRuleFactory,
    QuoteFactory,
)


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockAPIError(Exception):
    """Stand-in for postgrest APIError: carries a PostgreSQL error code."""

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code
        self.message = message
        super().__init__(message)


class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: int = None):
        self.data = data if data is not None else []
        if count is not None:
            self.count = count
        elif isinstance(self.data, list):
            self.count = len(self.data)
        else:
            self.count = 1 if self.data else 0


class MockSupabaseQuery:
    """Chainable query builder that runs against a MockSupabaseTable."""

    def __init__(self, table: "MockSupabaseTable", operation: str, payload=None):
        self._table = table
        self._operation = operation
        self._payload = payload
        self._filters = []
        self._order = []
        self._limit = None
        self._is_single = False

    def select(self, *args, **kwargs):
        return self

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order.append((column, desc))
        return self

    def limit(self, count):
        self._limit = count
        return self

    def range(self, start, end):
        return self

    def single(self):
        self._is_single = True
        return self

    def _matching(self) -> list[dict]:
        return [row for row in self._table.rows if all(f(row) for f in self._filters)]

    def execute(self) -> MockSupabaseResponse:
        self._table.client.raise_if_failing(self._table.name, self._operation)

        if self._operation == "insert":
            return MockSupabaseResponse(self._table.insert_rows(self._payload))

        if self._operation == "update":
            matched = self._matching()
            for row in matched:
                row.update(copy.deepcopy(self._payload))
                row["updated_at"] = datetime.now(timezone.utc).isoformat()
            return MockSupabaseResponse([copy.deepcopy(r) for r in matched])

        if self._operation == "delete":
            matched = self._matching()
            self._table.rows = [r for r in self._table.rows if r not in matched]
            return MockSupabaseResponse(matched)

        rows = self._matching()
        for column, desc in reversed(self._order):
            rows = sorted(
                rows,
                key=lambda r: (r.get(column) is None, r.get(column) if r.get(column) is not None else 0),
                reverse=desc
            )
        if self._limit is not None:
            rows = rows[:self._limit]
        rows = copy.deepcopy(rows)

        if self._is_single:
            return MockSupabaseResponse(rows[0] if rows else None)
        return MockSupabaseResponse(rows)


class MockSupabaseTable:
    """In-memory table."""

    def __init__(self, client: "MockSupabaseClient", name: str):
        self.client = client
        self.name = name
        self.rows: list[dict] = []
        self.unique: list[tuple] = []

    def insert_rows(self, data) -> list[dict]:
        batch = [data] if isinstance(data, dict) else list(data)
        inserted = []
        for item in batch:
            row = copy.deepcopy(item)
            row.setdefault("id", str(uuid4()))
            row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
            for columns in self.unique:
                key = tuple(row.get(c) for c in columns)
                if any(tuple(r.get(c) for c in columns) == key for r in self.rows):
                    raise MockAPIError(
                        f"duplicate key value violates unique constraint on {columns}",
                        code="23505"
                    )
            self.rows.append(row)
            inserted.append(copy.deepcopy(row))
        return inserted

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self, "select")

    def insert(self, data):
        return MockSupabaseQuery(self, "insert", data)

    def update(self, data):
        return MockSupabaseQuery(self, "update", data)

    def delete(self):
        return MockSupabaseQuery(self, "delete")


class MockSupabaseClient:
    """Mock Supabase client with per-table state and failure injection."""

    def __init__(self):
        self._tables: dict[str, MockSupabaseTable] = {}
        self._failures: list[dict] = []

    def table(self, name: str) -> MockSupabaseTable:
        if name not in self._tables:
            self._tables[name] = MockSupabaseTable(self, name)
        return self._tables[name]

    def set_table_data(self, table_name: str, data: list):
        """Replace the rows of a table."""
        self.table(table_name).rows = copy.deepcopy(list(data))

    def rows(self, table_name: str) -> list[dict]:
        """Current rows of a table."""
        return self.table(table_name).rows

    def add_unique_constraint(self, table_name: str, *columns: str):
        self.table(table_name).unique.append(columns)

    def fail_next(self, table_name: str, operation: str, error: Exception, times: int = 1, before=None):
        """
        Make the next `times` executions of an operation raise.

        `before` runs once on the first failure (e.g. to simulate a
        concurrent writer).
        """
        self._failures.append({
            "table": table_name,
            "operation": operation,
            "error": error,
            "remaining": times,
            "before": before,
        })

    def raise_if_failing(self, table_name: str, operation: str):
        for failure in self._failures:
            if failure["table"] == table_name and failure["operation"] == operation and failure["remaining"] > 0:
                if failure["before"] is not None:
                    failure["before"](self)
                    failure["before"] = None
                failure["remaining"] -= 1
                raise failure["error"]


# ===================
# FIXTURES
# ===================

SERVICE_MODULES = (
    "config.database",
    "services.catalog_service",
    "services.prerequisite_service",
    "services.quote_version_service",
)


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                CatalogProductFactory.create(name="Skelet")
            ])
    """
    client = MockSupabaseClient()
    client.add_unique_constraint("quote_versions", "quote_id", "version_number")
    return client


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client in every service module.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("products", [...])
            # Services created inside the test get the mock
    """
    patches = [
        patch(f"{module}.get_supabase_client", return_value=mock_supabase)
        for module in SERVICE_MODULES
    ]
    for p in patches:
        p.start()
    try:
        yield mock_supabase
    finally:
        for p in reversed(patches):
            p.stop()


@pytest.fixture
def pool_product() -> dict:
    """Rounded rectangle skimmer pool, 3 × 6 × 1.2 m."""
    return CatalogProductFactory.create(
        id="pool-uuid",
        name="Bazén obdélník 3×6×1,2 m",
        code="BAZ-OBD-SK-3-6-1.2",
        category="skelety",
        unit_price=100000,
    )


@pytest.fixture
def sample_configuration() -> dict:
    """Configuration matching pool_product."""
    return ConfigurationFactory.create(
        id="config-uuid",
        pool_shape="rectangle_rounded",
        pool_type="skimmer",
        dimensions={"width": 3, "length": 6, "depth": 1.2},
        technology=["shaft"],
        lighting="led",
        counterflow="none",
    )


@pytest.fixture
def sample_quote() -> dict:
    return QuoteFactory.create(id="quote-uuid", pool_shape="rectangle_rounded")


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/api/pool-codes/decode?code=BAZ-KRU-SK-3-1.2")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    with patch("main.check_connection", return_value={"status": "unhealthy", "error": "test"}):
        yield TestClient(app)
