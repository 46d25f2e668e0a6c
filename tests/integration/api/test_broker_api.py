"""Tests for the HTTP surface, running the real application against the in-memory store."""

import pytest
from conftest import MARIADB_DATABASE_SERVICE_ID, REDIS_KIND, REDIS_SERVICE_ID, SERVICE_IDS, secret
from fastapi.testclient import TestClient

from crossplane_broker.api.server import create_fastapi_app
from crossplane_broker.config import BrokerConfig
from crossplane_broker.domain import kinds

AUTH = ("broker", "s3cret")
HEADERS = {"X-Broker-API-Version": "2.14"}
PROVISION_BODY = {"service_id": REDIS_SERVICE_ID, "plan_id": "redis-standard"}
BIND_BODY = {"service_id": REDIS_SERVICE_ID, "plan_id": "redis-standard"}


@pytest.fixture
def config():
    return BrokerConfig(service_ids=SERVICE_IDS, username="broker", password="s3cret")


@pytest.fixture
def client(config, broker):
    return TestClient(create_fastapi_app(config, broker))


def provision(client, instance_id="i1", body=None):
    return client.put(
        f"/v2/service_instances/{instance_id}",
        params={"accepts_incomplete": "true"},
        json=body or PROVISION_BODY,
        auth=AUTH,
        headers=HEADERS,
    )


@pytest.mark.integration
class TestAuthAndVersion:
    """Test authentication and the API version check."""

    def test_healthz_is_public(self, client):
        response = client.get("/healthz")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_missing_credentials(self, client):
        """Test that broker routes require basic auth."""
        assert client.get("/v2/catalog", headers=HEADERS).status_code == 401

    def test_wrong_password(self, client):
        response = client.get("/v2/catalog", auth=("broker", "wrong"), headers=HEADERS)

        assert response.status_code == 401
        assert response.headers["www-authenticate"].startswith("Basic")

    def test_missing_version_header(self, client):
        """Test that the API version header is required."""
        response = client.get("/v2/catalog", auth=AUTH)

        assert response.status_code == 412
        assert response.json() == {"description": "X-Broker-API-Version Header not set"}

    @pytest.mark.parametrize("version,status_code", [("2.13", 412), ("3.0", 412), ("2.14", 200), ("2.17", 200)])
    def test_version_check(self, client, version, status_code):
        response = client.get("/v2/catalog", auth=AUTH, headers={"X-Broker-API-Version": version})

        assert response.status_code == status_code


@pytest.mark.integration
class TestBrokerAPI:
    """Test the broker protocol routes."""

    def test_catalog(self, client):
        """Test that the catalog lists the configured services."""
        response = client.get("/v2/catalog", auth=AUTH, headers=HEADERS)

        assert response.status_code == 200
        services = {service["id"]: service for service in response.json()["services"]}
        assert set(services) == set(SERVICE_IDS)
        assert services[REDIS_SERVICE_ID]["plan_updateable"] is True
        assert "redis-standard" in [plan["id"] for plan in services[REDIS_SERVICE_ID]["plans"]]

    def test_provision_requires_async(self, client):
        """Test that synchronous provisioning is rejected with the protocol error key."""
        response = client.put(
            "/v2/service_instances/i1",
            json=PROVISION_BODY,
            auth=AUTH,
            headers={**HEADERS, "X-Request-ID": "req-1"},
        )

        assert response.status_code == 422
        assert response.json()["error"] == "AsyncRequired"
        assert response.json()["description"].endswith('(correlation-id: "req-1")')

    def test_provision_twice(self, client):
        """Test that an identical repeat returns 200 with an empty body."""
        first = provision(client)
        second = provision(client)

        assert first.status_code == 202
        assert first.json() == {}
        assert second.status_code == 200
        assert second.json() == {}

    def test_provision_conflict(self, client):
        provision(client)

        response = provision(client, body={**PROVISION_BODY, "parameters": {"size": 3}})

        assert response.status_code == 409

    def test_provision_unknown_plan(self, client):
        response = provision(client, body={"service_id": REDIS_SERVICE_ID, "plan_id": "nope"})

        assert response.status_code == 400

    def test_bind_flow(self, client, workloads):
        """Test bind before and after the instance becomes ready."""
        provision(client)
        url = "/v2/service_instances/i1/service_bindings/b1"

        not_ready = client.put(url, json=BIND_BODY, auth=AUTH, headers=HEADERS)
        assert not_ready.status_code == 422
        assert not_ready.json()["error"] == "ConcurrencyError"

        workloads.ready_redis("i1")
        response = client.put(url, json=BIND_BODY, auth=AUTH, headers=HEADERS)

        assert response.status_code == 201
        credentials = response.json()["credentials"]
        assert credentials["master"] == "redis://i1"
        assert credentials["port"] == 6379
        assert credentials["sentinels"] == [{"host": "10.0.0.1", "port": 26379}]

        fetched = client.get(url, auth=AUTH, headers=HEADERS)
        assert fetched.status_code == 200
        assert fetched.json()["credentials"] == credentials

        unbind = client.delete(
            url,
            params={"service_id": REDIS_SERVICE_ID, "plan_id": "redis-standard"},
            auth=AUTH,
            headers=HEADERS,
        )
        assert unbind.status_code == 200
        assert unbind.json() == {}

    def test_last_operation(self, client, workloads):
        provision(client)
        url = "/v2/service_instances/i1/last_operation"

        workloads.make_ready(REDIS_KIND, "i1", reason="Creating")
        assert client.get(url, auth=AUTH, headers=HEADERS).json() == {
            "state": "in progress",
            "description": "Creating",
        }

        workloads.make_ready(REDIS_KIND, "i1", reason="Available")
        assert client.get(url, auth=AUTH, headers=HEADERS).json()["state"] == "succeeded"

    def test_last_operation_missing_instance(self, client):
        response = client.get("/v2/service_instances/missing/last_operation", auth=AUTH, headers=HEADERS)

        assert response.status_code == 410

    def test_get_instance(self, client):
        provision(client)

        response = client.get("/v2/service_instances/i1", auth=AUTH, headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == {"service_id": REDIS_SERVICE_ID, "plan_id": "redis-standard", "parameters": {}}

    def test_missing_instance_is_gone(self, client):
        """Test that reads and binds of a missing instance answer 410."""
        url = "/v2/service_instances/missing"
        responses = [
            client.get(url, auth=AUTH, headers=HEADERS),
            client.get(f"{url}/service_bindings/b1", auth=AUTH, headers=HEADERS),
            client.put(f"{url}/service_bindings/b1", json=BIND_BODY, auth=AUTH, headers=HEADERS),
        ]

        for response in responses:
            assert response.status_code == 410
            assert response.json()["description"].startswith("instance does not exist")

    def test_database_rebind_returns_ok(self, client, fake_client, workloads):
        """Test that repeating a database bind answers 200 with the same credentials."""
        fake_client.add(kinds.SECRET, secret("m1", {"endpoint": "10.0.0.5", "port": "3306"}))
        body = {"service_id": MARIADB_DATABASE_SERVICE_ID, "plan_id": "mariadb-db-default"}
        provision(client, "d1", {**body, "parameters": {"parent_reference": "m1"}})
        workloads.make_ready(kinds.MARIADB_DATABASE_INSTANCE, "d1")
        url = "/v2/service_instances/d1/service_bindings/b1"

        created = client.put(url, json=body, auth=AUTH, headers=HEADERS)
        repeated = client.put(url, json=body, auth=AUTH, headers=HEADERS)

        assert created.status_code == 201
        assert repeated.status_code == 200
        assert repeated.json() == created.json()

    def test_update(self, client):
        """Test an accepted and a rejected SLA change."""
        provision(client)
        url = "/v2/service_instances/i1"

        accepted = client.patch(
            url, json={"service_id": REDIS_SERVICE_ID, "plan_id": "redis-premium"}, auth=AUTH, headers=HEADERS
        )
        rejected = client.patch(
            url, json={"service_id": REDIS_SERVICE_ID, "plan_id": "redis-standard-c2"}, auth=AUTH, headers=HEADERS
        )

        assert accepted.status_code == 200
        assert accepted.json() == {}
        assert rejected.status_code == 422
        assert rejected.json()["description"].startswith("cluster change not permitted")

    def test_deprovision(self, client, workloads):
        provision(client)
        workloads.ready_redis("i1")
        params = {"service_id": REDIS_SERVICE_ID, "plan_id": "redis-standard", "accepts_incomplete": "true"}

        first = client.delete("/v2/service_instances/i1", params=params, auth=AUTH, headers=HEADERS)
        second = client.delete("/v2/service_instances/i1", params=params, auth=AUTH, headers=HEADERS)

        assert first.status_code == 200
        assert first.json() == {}
        assert second.status_code == 410

    def test_binding_last_operation_not_implemented(self, client):
        response = client.get(
            "/v2/service_instances/i1/service_bindings/b1/last_operation", auth=AUTH, headers=HEADERS
        )

        assert response.status_code == 501
        assert response.json()["error"] == "NotImplemented"


@pytest.mark.integration
class TestCustomAPI:
    """Test the custom endpoints."""

    def test_endpoints(self, client, workloads):
        """Test that endpoints are listed without the API version header."""
        provision(client)
        workloads.ready_redis("i1")

        response = client.get("/custom/service_instances/i1/endpoint", auth=AUTH)

        assert response.status_code == 200
        assert response.json() == [
            {"destination": "10.0.0.1", "ports": "6379", "protocol": "tcp"},
            {"destination": "10.0.0.1", "ports": "26379", "protocol": "tcp"},
        ]

    def test_endpoints_missing_instance(self, client):
        response = client.get("/custom/service_instances/missing/endpoint", auth=AUTH)

        assert response.status_code == 404
        assert response.json() == {"error": "instance not found", "description": "instance not found"}

    def test_endpoints_require_auth(self, client):
        assert client.get("/custom/service_instances/i1/endpoint").status_code == 401

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/custom/service_instances/i1/usage"),
            ("POST", "/custom/admin/service-definition"),
            ("DELETE", "/custom/admin/service-definition/d1"),
            ("POST", "/custom/service_instances/i1/backups"),
            ("GET", "/custom/service_instances/i1/backups"),
            ("GET", "/custom/service_instances/i1/backups/bk1"),
            ("DELETE", "/custom/service_instances/i1/backups/bk1"),
            ("POST", "/custom/service_instances/i1/backups/bk1/restores"),
            ("GET", "/custom/service_instances/i1/backups/bk1/restores/r1"),
            ("GET", "/custom/service_instances/i1/api-docs"),
        ],
    )
    def test_not_implemented(self, client, method, path):
        response = client.request(method, path, auth=AUTH)

        assert response.status_code == 501
        assert response.json() == {"error": "API not implemented", "description": "API not implemented"}
