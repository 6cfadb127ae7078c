import json
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import pytest

from docsplit.domain.split import Split

FIXED_NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def _split_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "split_id": "s1",
        "client_id": "c1",
        "status": "draft",
        "documents": [
            {
                "id": "d1",
                "name": "W2",
                "classification": "W-2",
                "file_name": "w2.pdf",
                "short_description": "John's W-2",
                "page_urls": ["page_1.png", "page_2.png"],
            },
            {
                "id": "d2",
                "name": "Invoice",
                "classification": "Invoice",
                "file_name": "invoice.pdf",
                "short_description": "",
                "page_urls": ["page_5.png", "page_3.png", "page_4.png"],
            },
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture()
def make_payload() -> Callable[..., dict[str, Any]]:
    """AI splitter output: d1 (W-2, pages 1-2) and d2 (invoice, pages 3-5)."""
    return _split_payload


@pytest.fixture()
def split_json() -> str:
    return json.dumps(_split_payload())


@pytest.fixture()
def split(split_json: str) -> Split:
    """A draft split with documents d1 (pages 1-2) and d2 (pages 3-5)."""
    return Split.from_json(split_json, now=FIXED_NOW)


@pytest.fixture()
def single_document_split() -> Split:
    """The W-2 only split: d1 with page_1.png and page_2.png."""
    payload = {
        "id": "s1",
        "client_id": "c1",
        "status": "draft",
        "documents": [
            {
                "id": "d1",
                "name": "W2",
                "classification": "W-2",
                "file_name": "w2.pdf",
                "page_urls": ["page_1.png", "page_2.png"],
            }
        ],
    }
    return Split.from_json(json.dumps(payload), now=FIXED_NOW)
