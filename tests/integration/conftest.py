import json
import os
import uuid
from collections.abc import Callable, Generator
from typing import Any

import psycopg
import pytest

from docsplit.config.settings import Settings
from docsplit.database.connection import close_pool, get_connection, init_pool
from docsplit.database.migrations import apply_schema
from docsplit.database.unit_of_work import unit_of_work
from docsplit.domain.split import Split


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docsplit_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            apply_schema(conn)
    except Exception as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. Set DB_* env to point at a test database"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[list[str], None, None]:
    """Split IDs appended here are deleted with all their rows after the test."""
    cleanup: list[str] = []
    yield cleanup
    if not cleanup:
        return
    with unit_of_work() as uow:
        for split_id in cleanup:
            uow.split_repository().delete(split_id)
        uow.commit()


@pytest.fixture
def new_split(
    make_payload: Callable[..., dict[str, Any]],
    integration_cleanup: list[str],
) -> Callable[..., Split]:
    """Build an unsaved split with unique split and document IDs."""

    def _build(client_id: str = "c1") -> Split:
        payload = make_payload(split_id=f"s-{uuid.uuid4()}", client_id=client_id)
        for document in payload["documents"]:
            document["id"] = f"{document['id']}-{uuid.uuid4()}"
        integration_cleanup.append(payload["split_id"])
        return Split.from_json(json.dumps(payload))

    return _build
