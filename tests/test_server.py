"""
Tests for the MetaGov HTTP API.

The application is built with create_app() around a facade using the
memory audit backend and driven through the aiohttp test client.
"""

import pytest

# Skip all tests if aiohttp is not installed
aiohttp = pytest.importorskip("aiohttp")

from aiohttp import web

from metagov.audit.log import AuditLog
from metagov.audit.sinks import MemorySink
from metagov.config.schema import MetaGovConfig
from metagov.engine.coordinator import EvaluationCoordinator
from metagov.engine.governance import GovernanceFacade
from metagov.engine.registry import PolicyRegistry
from metagov.server import create_app


class RefusingSink(MemorySink):
    """Memory sink that refuses every write."""

    def write(self, entry):  # type: ignore[no-untyped-def]
        raise OSError("read-only file system")


@pytest.fixture
def app(test_config: MetaGovConfig, facade: GovernanceFacade) -> web.Application:
    """Application around the shared memory-backed facade."""
    return create_app(test_config, facade=facade)


@pytest.fixture
def refusing_app(test_config: MetaGovConfig) -> web.Application:
    """Application whose audit log cannot record decisions."""
    facade = GovernanceFacade(
        registry=PolicyRegistry.with_defaults(),
        coordinator=EvaluationCoordinator(policy_timeout_ms=1000),
        audit_log=AuditLog(RefusingSink()),
    )
    return create_app(test_config, facade=facade)


class TestHealth:
    """Tests for GET /v1/health."""

    @pytest.mark.asyncio
    async def test_healthy(self, app: web.Application, aiohttp_client) -> None:
        client = await aiohttp_client(app)

        resp = await client.get("/v1/health")

        assert resp.status == 200
        data = await resp.json()
        assert data["status"] == "healthy"
        assert data["checks"]["policies"]["count"] == 8
        assert data["checks"]["audit"]["status"] == "ready"

    @pytest.mark.asyncio
    async def test_unhealthy_when_audit_closed(
        self, app: web.Application, facade: GovernanceFacade, aiohttp_client
    ) -> None:
        client = await aiohttp_client(app)
        facade.audit_log.close()

        resp = await client.get("/v1/health")

        assert resp.status == 503
        assert (await resp.json())["status"] == "unhealthy"


class TestDecide:
    """Tests for POST /v1/decide."""

    @pytest.mark.asyncio
    async def test_approved(self, app: web.Application, aiohttp_client) -> None:
        client = await aiohttp_client(app)

        resp = await client.post(
            "/v1/decide",
            json={"id": "req-http", "description": "Fix typo", "tags": ["docs-change"]},
        )

        assert resp.status == 200
        data = await resp.json()
        assert data["request_id"] == "req-http"
        assert data["final_status"] == "APPROVED"
        assert data["dominant_policy"] == "guardrails"

    @pytest.mark.asyncio
    async def test_blocked_is_still_200(self, app: web.Application, aiohttp_client) -> None:
        client = await aiohttp_client(app)

        resp = await client.post("/v1/decide", json={"tags": ["database-change"]})

        assert resp.status == 200
        data = await resp.json()
        assert data["final_status"] == "BLOCKED"
        assert data["dominant_policy"] == "migration-only"

    @pytest.mark.asyncio
    async def test_invalid_json(self, app: web.Application, aiohttp_client) -> None:
        client = await aiohttp_client(app)

        resp = await client.post(
            "/v1/decide",
            data="{not json",
            headers={"Content-Type": "application/json"},
        )

        assert resp.status == 400
        assert (await resp.json())["error"]["type"] == "InvalidRequest"

    @pytest.mark.asyncio
    async def test_invalid_request(self, app: web.Application, aiohttp_client) -> None:
        client = await aiohttp_client(app)

        resp = await client.post("/v1/decide", json={"tags": "database-change"})

        assert resp.status == 400
        assert (await resp.json())["error"]["type"] == "ValidationError"

    @pytest.mark.asyncio
    async def test_audit_failure_returns_503(
        self, refusing_app: web.Application, aiohttp_client
    ) -> None:
        client = await aiohttp_client(refusing_app)

        resp = await client.post("/v1/decide", json={"id": "req-lost", "tags": ["docs-change"]})

        assert resp.status == 503
        error = (await resp.json())["error"]
        assert error["type"] == "AuditFailureError"
        assert error["decision"]["final_status"] == "APPROVED"

    @pytest.mark.asyncio
    async def test_request_id_header_is_echoed(
        self, app: web.Application, aiohttp_client
    ) -> None:
        client = await aiohttp_client(app)

        resp = await client.post(
            "/v1/decide",
            json={"tags": ["docs-change"]},
            headers={"X-Request-ID": "trace-123"},
        )

        assert resp.headers["X-Request-ID"] == "trace-123"


class TestAudit:
    """Tests for the /v1/audit endpoints."""

    async def decide_some(self, client) -> None:  # type: ignore[no-untyped-def]
        for request_id, tag in (("req-1", "docs-change"), ("req-2", "database-change")):
            resp = await client.post("/v1/decide", json={"id": request_id, "tags": [tag]})
            assert resp.status == 200

    @pytest.mark.asyncio
    async def test_list(self, app: web.Application, aiohttp_client) -> None:
        client = await aiohttp_client(app)
        await self.decide_some(client)

        resp = await client.get("/v1/audit")

        assert resp.status == 200
        data = await resp.json()
        assert data["total"] == 2
        assert data["last_sequence"] == 2
        assert [e["sequence"] for e in data["entries"]] == [1, 2]

    @pytest.mark.asyncio
    async def test_list_filters_and_limits(self, app: web.Application, aiohttp_client) -> None:
        client = await aiohttp_client(app)
        await self.decide_some(client)

        resp = await client.get("/v1/audit", params={"status": "blocked", "limit": "1"})

        data = await resp.json()
        assert [e["request"]["id"] for e in data["entries"]] == ["req-2"]
        assert data["limit"] == 1

    @pytest.mark.asyncio
    async def test_list_rejects_bad_limit(self, app: web.Application, aiohttp_client) -> None:
        client = await aiohttp_client(app)

        resp = await client.get("/v1/audit", params={"limit": "many"})

        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_get_entry(self, app: web.Application, aiohttp_client) -> None:
        client = await aiohttp_client(app)
        await self.decide_some(client)

        resp = await client.get("/v1/audit/req-2")

        assert resp.status == 200
        data = await resp.json()
        assert data["request_id"] == "req-2"
        assert data["entries"][0]["decision"]["final_status"] == "BLOCKED"

    @pytest.mark.asyncio
    async def test_get_missing_entry(self, app: web.Application, aiohttp_client) -> None:
        client = await aiohttp_client(app)

        resp = await client.get("/v1/audit/req-none")

        assert resp.status == 404
        assert (await resp.json())["error"]["type"] == "NotFound"

    @pytest.mark.asyncio
    async def test_stats(self, app: web.Application, aiohttp_client) -> None:
        client = await aiohttp_client(app)
        await self.decide_some(client)

        resp = await client.get("/v1/audit/stats")

        data = await resp.json()
        assert data["total"] == 2
        assert data["by_status"] == {"APPROVED": 1, "BLOCKED": 1}
        assert data["backend"] == "memory"


class TestPolicies:
    """Tests for GET /v1/policies."""

    @pytest.mark.asyncio
    async def test_list(self, app: web.Application, aiohttp_client) -> None:
        client = await aiohttp_client(app)

        resp = await client.get("/v1/policies")

        data = await resp.json()
        assert data["total"] == 8
        assert [p["name"] for p in data["policies"]][:2] == ["guardrails", "migration-only"]
        assert data["policies"][0]["mandatory"] is True
