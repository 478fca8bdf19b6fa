"""
Unit tests for FastAPI dependency injection.
"""

from __future__ import annotations

from unittest.mock import Mock

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from rental_booking.dependencies import (
    get_booking_manager,
    get_current_user_id,
    get_db_engine,
)


@pytest.mark.unit
def test_get_db_engine_dependency() -> None:
    engine = next(get_db_engine())

    assert isinstance(engine, Engine)


@pytest.mark.unit
def test_booking_manager_is_shared_per_engine() -> None:
    """Test that one engine always gets the same manager and lock registry."""
    engine_a = Mock(spec=Engine)
    engine_b = Mock(spec=Engine)

    assert get_booking_manager(engine_a) is get_booking_manager(engine_a)
    assert get_booking_manager(engine_a).locks is get_booking_manager(engine_a).locks
    assert get_booking_manager(engine_a) is not get_booking_manager(engine_b)


@pytest.fixture
def identity_client() -> TestClient:
    app = FastAPI()

    @app.get("/whoami")
    def whoami(user_id: str = Depends(get_current_user_id)) -> dict[str, str]:
        return {"user_id": user_id}

    return TestClient(app)


@pytest.mark.unit
def test_current_user_from_header(identity_client: TestClient) -> None:
    response = identity_client.get("/whoami", headers={"X-User-ID": " renter-1 "})

    assert response.status_code == 200
    assert response.json() == {"user_id": "renter-1"}


@pytest.mark.unit
@pytest.mark.parametrize("headers", [{}, {"X-User-ID": "   "}])
def test_missing_user_is_unauthenticated(identity_client: TestClient, headers: dict) -> None:
    response = identity_client.get("/whoami", headers=headers)

    assert response.status_code == 401
