"""Tests for the registry HTTP endpoints."""

from __future__ import annotations

from typing import Dict

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

import medconsent.main as main_mod
from medconsent.crypto.jwt import create_identity_token, create_jwt
from medconsent.main import app, get_caller_identity
from medconsent.registry.auth import ContextAuthenticator
from medconsent.registry.clock import ManualClock
from medconsent.registry.engine import ConsentRegistry
from medconsent.registry.events import InMemoryEventPublisher
from medconsent.registry.storage import InMemoryRegistryStore


client = TestClient(app)


def bearer(identity: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_identity_token(identity)}"}


class TestRegistryEndpoints:
    """Exercise the public surface over HTTP."""

    def setup_method(self) -> None:
        self.original = main_mod.registry
        self.clock = ManualClock(start=100)
        self.events = InMemoryEventPublisher()
        main_mod.registry = ConsentRegistry(
            store=InMemoryRegistryStore(),
            authenticator=ContextAuthenticator(),
            clock=self.clock,
            publisher=self.events,
        )

    def teardown_method(self) -> None:
        main_mod.registry = self.original

    def _bootstrap(self) -> None:
        response = client.post("/registry/initialize", json={"admin": "admin"}, headers=bearer("admin"))
        assert response.status_code == 200
        response = client.post("/issuers/providerA", headers=bearer("admin"))
        assert response.status_code == 200

    def _mint(self, expiry: int = 0) -> int:
        response = client.post(
            "/consents",
            json={"owner": "providerA", "metadata_uri": "ipfs://x",
                  "consent_type": "treatment", "expiry": expiry},
            headers=bearer("providerA"),
        )
        assert response.status_code == 201
        return response.json()["record_id"]

    def test_health(self) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_issue_and_query(self) -> None:
        """Admin allowlists a provider, which mints and reads back its record."""
        self._bootstrap()
        record_id = self._mint()

        assert record_id == 0
        assert client.get("/issuers/providerA").json()["is_issuer"] is True
        assert client.get("/consents/0/owner").json()["owner"] == "providerA"
        assert client.get("/consents/0/metadata").json()["issuer"] == "providerA"
        assert client.get("/consents/0/valid").json()["valid"] is True
        assert client.get("/consents/0/revoked").json()["revoked"] is False
        assert client.get("/owners/providerA/consents").json()["record_ids"] == [0]

        history = client.get("/consents/0/history").json()["history"]
        assert [entry["action"] for entry in history] == ["issued"]

        summary = client.get("/registry").json()
        assert summary == {"record_count": 1, "issuers": ["providerA"]}

    def test_mutation_requires_token(self) -> None:
        response = client.post("/registry/initialize", json={"admin": "admin"})

        assert response.status_code == 401

    def test_expired_token_rejected(self) -> None:
        token = create_jwt({"sub": "admin", "type": "identity"}, expires_in_minutes=-1)
        response = client.post(
            "/registry/initialize",
            json={"admin": "admin"},
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401

    def test_token_for_other_identity_is_refused(self) -> None:
        """A valid token cannot act for a different identity."""
        response = client.post("/registry/initialize", json={"admin": "admin"}, headers=bearer("mallory"))

        assert response.status_code == 401
        assert response.json()["error"] == "NOT_AUTHENTICATED"

    def test_double_initialize_conflict(self) -> None:
        self._bootstrap()
        response = client.post("/registry/initialize", json={"admin": "other"}, headers=bearer("other"))

        assert response.status_code == 409
        assert response.json()["error"] == "ALREADY_INITIALIZED"

    def test_non_admin_cannot_add_issuer(self) -> None:
        self._bootstrap()
        response = client.post("/issuers/providerB", headers=bearer("providerA"))

        assert response.status_code == 403
        assert response.json()["error"] == "NOT_AUTHORIZED"

    def test_remove_issuer(self) -> None:
        self._bootstrap()
        response = client.delete("/issuers/providerA", headers=bearer("admin"))

        assert response.status_code == 200
        assert client.get("/issuers/providerA").json()["is_issuer"] is False

    def test_update_revoke_flow(self) -> None:
        self._bootstrap()
        record_id = self._mint()

        response = client.put(f"/consents/{record_id}", json={"metadata_uri": "ipfs://y"},
                              headers=bearer("providerA"))
        assert response.status_code == 200
        assert response.json()["metadata"]["version"] == 2

        response = client.post(f"/consents/{record_id}/revoke", headers=bearer("providerA"))
        assert response.status_code == 200
        assert client.get(f"/consents/{record_id}/valid").json()["valid"] is False

        response = client.put(f"/consents/{record_id}", json={"metadata_uri": "ipfs://z"},
                              headers=bearer("providerA"))
        assert response.status_code == 409
        assert response.json()["error"] == "CONSENT_REVOKED"

    def test_transfer(self) -> None:
        self._bootstrap()
        record_id = self._mint()

        response = client.post(f"/consents/{record_id}/transfer", json={"to_identity": "patient1"},
                               headers=bearer("providerA"))
        assert response.status_code == 200
        assert client.get(f"/consents/{record_id}/owner").json()["owner"] == "patient1"

        response = client.post(f"/consents/{record_id}/transfer", json={"to_identity": "patient2"},
                               headers=bearer("providerA"))
        assert response.status_code == 403
        assert response.json()["error"] == "NOT_TOKEN_OWNER"

    def test_missing_record_is_404(self) -> None:
        self._bootstrap()

        response = client.get("/consents/7/owner")
        assert response.status_code == 404
        assert response.json()["error"] == "TOKEN_NOT_FOUND"
        assert client.get("/consents/7/history").json()["history"] == []

    def test_invalid_input_is_400(self) -> None:
        self._bootstrap()
        response = client.post(
            "/consents",
            json={"owner": "providerA", "metadata_uri": "ipfs://x", "consent_type": "treatment", "expiry": -5},
            headers=bearer("providerA"),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_export(self) -> None:
        self._bootstrap()
        record_id = self._mint(expiry=1000)

        export = client.get(f"/consents/{record_id}/export").json()
        assert export["valid"] is True
        assert export["history_verified"] is True

        self.clock.set(1000)
        assert client.get(f"/consents/{record_id}/valid").json()["valid"] is False


@pytest.mark.asyncio
async def test_caller_identity_from_bearer_token() -> None:
    token = create_identity_token("patient1")
    assert await get_caller_identity(authorization=f"Bearer {token}") == "patient1"


@pytest.mark.asyncio
async def test_caller_identity_requires_header() -> None:
    with pytest.raises(HTTPException) as exc_info:
        await get_caller_identity(authorization=None)
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_caller_identity_rejects_expired_token() -> None:
    token = create_identity_token("patient1", expires_in_minutes=-5)
    with pytest.raises(HTTPException) as exc_info:
        await get_caller_identity(authorization=f"Bearer {token}")
    assert exc_info.value.status_code == 401
