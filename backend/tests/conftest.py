"""
Pytest configuration and fixtures for API tests.
Provides a test client with the store and role lookup replaced by in-memory doubles.
"""
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock, Mock

from backend.main import app
from backend.db_pool import get_cooccurrence_store
from backend.middleware.rbac import create_access_token, get_role_repository
from cooccurrence.models import Entity, ParticipationFact, ParticipationKind


ROLES = {
    "admin-1": ["admin"],
    "user-1": [],
}


class FakeRoleRepository:
    """Role lookup backed by the ROLES table above"""

    async def roles_for(self, user_id):
        return list(ROLES.get(user_id, []))


# Mock Store

@pytest.fixture
def store():
    """Store double: three-entity scenario for compute, small graph for reads"""
    invited = ParticipationKind.INVITED
    responded = ParticipationKind.RESPONDED
    facts = [
        ParticipationFact("1", "A", invited),
        ParticipationFact("1", "B", invited),
        ParticipationFact("2", "A", invited),
        ParticipationFact("2", "B", invited),
        ParticipationFact("2", "C", invited),
        ParticipationFact("1", "A", responded),
        ParticipationFact("2", "A", responded),
        ParticipationFact("2", "C", responded),
    ]

    mock = MagicMock()
    lock_ctx = MagicMock()
    lock_ctx.__aenter__ = AsyncMock(return_value=True)
    lock_ctx.__aexit__ = AsyncMock(return_value=False)
    mock.try_acquire_compute_lock = Mock(return_value=lock_ctx)
    mock.compute_lock_ctx = lock_ctx
    mock.ensure_tables_exist = AsyncMock()
    mock.fetch_participation = AsyncMock(return_value=facts)
    mock.fetch_case_dates = AsyncMock(return_value={})
    mock.delete_all_pairs = AsyncMock()
    mock.insert_pairs = AsyncMock(side_effect=lambda rows: len(rows))

    mock.load_network_rows = AsyncMock(return_value=[
        {
            "entity_a_id": "A",
            "entity_b_id": "B",
            "relationship_strength": 0.8,
            "jaccard_score": 0.8,
            "cooccurrence_count": 8,
            "total_shared_case_count": 8,
            "invite_cooccurrence_count": 6,
            "response_cooccurrence_count": 4,
        },
        {
            "entity_a_id": "A",
            "entity_b_id": "C",
            "relationship_strength": 0.4,
            "jaccard_score": 0.4,
            "cooccurrence_count": 2,
            "total_shared_case_count": 2,
            "invite_cooccurrence_count": 2,
            "response_cooccurrence_count": 0,
        },
    ])
    mock.load_neighbor_rows = mock.load_network_rows
    mock.load_entities = AsyncMock(return_value={
        "A": Entity("A", "Naturvårdsverket", "government_body"),
        "B": Entity("B", "Svenskt Näringsliv", "organization"),
        "C": Entity("C", "Anna Andersson", "person"),
    })
    mock.load_type_counts = AsyncMock(return_value={"government_body": 1, "organization": 1, "person": 1})
    return mock


@pytest.fixture
def client(store):
    """Create test client with store and role overrides"""
    app.dependency_overrides[get_cooccurrence_store] = lambda: store
    app.dependency_overrides[get_role_repository] = lambda: FakeRoleRepository()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# Auth Headers

@pytest.fixture
def admin_headers():
    token = create_access_token({"sub": "admin-1", "email": "admin@example.se"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers():
    token = create_access_token({"sub": "user-1", "email": "user@example.se"})
    return {"Authorization": f"Bearer {token}"}
