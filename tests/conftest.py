"""Shared fixtures: vault instances and an in-memory asyncpg-style pool."""
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import pytest

from studymate import credentials
from studymate.vault import CredentialVault

TEST_SECRET = "test-encryption-key-32-chars-long"
OTHER_SECRET = "another-encryption-key-32-chars-xx"


@pytest.fixture(scope="session")
def vault():
    return CredentialVault(TEST_SECRET)


@pytest.fixture(scope="session")
def other_vault():
    return CredentialVault(OTHER_SECRET)


class FakeConnection:
    """Executes the API key statements against a list of dict rows."""

    _PUBLIC = ("id", "provider", "name", "created_at", "last_used")

    def __init__(self, rows: list[dict]):
        self.rows = rows
        self.executed: list[str] = []

    def _public(self, row):
        return {k: row[k] for k in self._PUBLIC}

    async def fetch(self, sql, *args):
        self.executed.append(sql)
        if sql == credentials._SELECT_ALL:
            (user_id,) = args
            rows = [r for r in self.rows if r["user_id"] == user_id]
            rows.sort(key=lambda r: r["created_at"], reverse=True)
            return [self._public(r) for r in rows]
        raise AssertionError(f"unexpected fetch: {sql}")

    async def fetchrow(self, sql, *args):
        self.executed.append(sql)
        if sql == credentials._SELECT_BY_PROVIDER:
            user_id, provider = args
            return next(
                (dict(r) for r in self.rows
                 if r["user_id"] == user_id and r["provider"] == provider),
                None,
            )
        if sql == credentials._SELECT_BY_ID:
            key_id, user_id = args
            return next(
                (dict(r) for r in self.rows
                 if r["id"] == key_id and r["user_id"] == user_id),
                None,
            )
        if sql == credentials._INSERT_KEY:
            user_id, provider, encrypted_key, name = args
            row = {
                "id": uuid.uuid4(),
                "user_id": user_id,
                "provider": provider,
                "encrypted_key": encrypted_key,
                "name": name,
                "created_at": datetime.now(timezone.utc),
                "last_used": None,
            }
            self.rows.append(row)
            return self._public(row)
        if sql == credentials._UPDATE_KEY:
            key_id, user_id, name, encrypted_key = args
            for row in self.rows:
                if row["id"] == key_id and row["user_id"] == user_id:
                    if name is not None:
                        row["name"] = name
                    if encrypted_key is not None:
                        row["encrypted_key"] = encrypted_key
                    return self._public(row)
            return None
        raise AssertionError(f"unexpected fetchrow: {sql}")

    async def execute(self, sql, *args):
        self.executed.append(sql)
        if sql == credentials._DELETE_KEY:
            key_id, user_id = args
            self.rows[:] = [
                r for r in self.rows
                if not (r["id"] == key_id and r["user_id"] == user_id)
            ]
            return "DELETE 1"
        if sql == credentials._TOUCH_LAST_USED:
            (key_id,) = args
            for row in self.rows:
                if row["id"] == key_id:
                    row["last_used"] = datetime.now(timezone.utc)
            return "UPDATE 1"
        raise AssertionError(f"unexpected execute: {sql}")


class FakePool:
    def __init__(self):
        self.rows: list[dict] = []
        self.conn = FakeConnection(self.rows)

    @asynccontextmanager
    async def acquire(self):
        yield self.conn


@pytest.fixture
def db_pool():
    return FakePool()
