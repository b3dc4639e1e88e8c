"""
API endpoint tests for the IP Check backend.

Tests cover:
- Health checks and API index
- Reachability sweeps over GET /api/status
- Site and site-assignment CRUD
- Device record upsert/delete
- Validation and not-found error formatting
- Request ID tracking
"""

import pytest
from httpx import AsyncClient


class TestHealthAndInfo:
    """Health check and API index endpoints."""

    @pytest.mark.asyncio
    async def test_health_check(self, async_client: AsyncClient):
        """GET /health returns 200 with status healthy or degraded."""
        response = await async_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        # "degraded" is expected where the test host has no ping binary
        assert data["status"] in ("healthy", "degraded")
        assert "app" in data
        assert "version" in data

    @pytest.mark.asyncio
    async def test_api_root_lists_endpoints(self, async_client: AsyncClient):
        """GET /api lists every resource endpoint."""
        response = await async_client.get("/api")
        assert response.status_code == 200
        endpoints = response.json()["endpoints"]
        assert endpoints["status"] == "/api/status"
        assert endpoints["ipcheck"] == "/api/ipcheck"


class TestStatusEndpoint:
    """Reachability sweep endpoint tests."""

    @pytest.mark.asyncio
    async def test_single_host_alive(self, async_client: AsyncClient, fake_prober):
        """A marked single host returns exactly one result."""
        fake_prober.alive.add("10.0.0.5")
        response = await async_client.get("/api/status", params={"ipRange": "num10.0.0.5"})
        assert response.status_code == 200
        assert response.json() == [{
            "ip": "10.0.0.5",
            "alive": True,
            "time": 1.2,
            "min": "1.2",
            "max": "1.2",
            "avg": "1",
            "packetLoss": "0",
        }]
        assert fake_prober.calls == ["10.0.0.5"]

    @pytest.mark.asyncio
    async def test_single_host_unreachable(self, async_client: AsyncClient):
        """An unreachable host reports alive=false with sentinel latency fields."""
        response = await async_client.get("/api/status", params={"ipRange": "num10.0.0.6"})
        assert response.status_code == 200
        result = response.json()[0]
        assert result["alive"] is False
        assert result["time"] == "unknown"
        assert result["avg"] == "-"

    @pytest.mark.asyncio
    async def test_prefix_sweeps_254_hosts_in_order(self, async_client: AsyncClient, fake_prober):
        """A three-octet prefix sweeps .1 through .254, results in address order."""
        fake_prober.alive.update({"192.168.7.1", "192.168.7.200"})
        response = await async_client.get("/api/status", params={"ipRange": "192.168.7"})
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 254
        assert [r["ip"] for r in data] == [f"192.168.7.{n}" for n in range(1, 255)]
        alive = [r["ip"] for r in data if r["alive"]]
        assert alive == ["192.168.7.1", "192.168.7.200"]

    @pytest.mark.asyncio
    async def test_failed_probe_reported_as_dead(self, async_client: AsyncClient, fake_prober):
        """A probe that raises yields {ip, alive: false} and the sweep still succeeds."""
        fake_prober.alive.add("10.1.1.1")
        fake_prober.failing.add("10.1.1.2")
        response = await async_client.get("/api/status", params={"ipRange": "10.1.1"})
        assert response.status_code == 200
        data = response.json()
        assert data[1] == {"ip": "10.1.1.2", "alive": False}
        assert data[0]["alive"] is True

    @pytest.mark.asyncio
    async def test_missing_ip_range(self, async_client: AsyncClient):
        """GET /api/status without ipRange returns 400."""
        response = await async_client.get("/api/status")
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid ipRange"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ip_range", ["10.0", "10.0.0.1", "num10.0.0", "abc.def.ghi", "10.0.300"])
    async def test_malformed_ip_range(self, async_client: AsyncClient, fake_prober, ip_range):
        """Malformed ipRange values are rejected before anything is probed."""
        response = await async_client.get("/api/status", params={"ipRange": ip_range})
        assert response.status_code == 400
        assert "details" in response.json()
        assert fake_prober.calls == []


class TestSiteEndpoints:
    """Site CRUD endpoint tests."""

    @pytest.mark.asyncio
    async def test_upsert_and_list_site(self, async_client: AsyncClient):
        """POST /api/site creates a site that GET /api/site lists."""
        response = await async_client.post(
            "/api/site", json={"sitename": "hq.main", "sitefullname": "HQ Main Floor"}
        )
        assert response.status_code == 200
        assert response.json() == {"message": "Data upserted successfully", "affectedRows": 1}

        response = await async_client.get("/api/site")
        assert response.status_code == 200
        sites = response.json()
        assert len(sites) == 1
        assert sites[0]["sitename"] == "hq.main"
        assert sites[0]["sitefullname"] == "HQ Main Floor"

    @pytest.mark.asyncio
    async def test_upsert_existing_site_updates_full_name(self, async_client: AsyncClient):
        """Posting an existing sitename replaces its full name instead of duplicating it."""
        await async_client.post("/api/site", json={"sitename": "lab", "sitefullname": "Lab"})
        await async_client.post("/api/site", json={"sitename": "lab", "sitefullname": "Test Lab"})

        sites = (await async_client.get("/api/site")).json()
        assert [(s["sitename"], s["sitefullname"]) for s in sites] == [("lab", "Test Lab")]

    @pytest.mark.asyncio
    async def test_delete_site(self, async_client: AsyncClient):
        """DELETE /api/site removes the named site."""
        await async_client.post("/api/site", json={"sitename": "lab", "sitefullname": "Lab"})
        response = await async_client.request("DELETE", "/api/site", json={"sitename": "lab"})
        assert response.status_code == 200
        assert response.json()["message"] == "Site deleted successfully"
        assert (await async_client.get("/api/site")).json() == []

    @pytest.mark.asyncio
    async def test_delete_missing_site(self, async_client: AsyncClient):
        """Deleting an unknown site returns 404 with a message."""
        response = await async_client.request("DELETE", "/api/site", json={"sitename": "nowhere"})
        assert response.status_code == 404
        assert response.json() == {"message": "Site not found"}

    @pytest.mark.asyncio
    async def test_site_missing_sitename(self, async_client: AsyncClient):
        """POST /api/site without sitename is a validation error."""
        response = await async_client.post("/api/site", json={"sitefullname": "Nameless"})
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Validation failed"
        assert "sitename" in [e["field"] for e in data["errors"]]

    @pytest.mark.asyncio
    async def test_site_groups(self, async_client: AsyncClient):
        """GET /api/site/groups groups sites by prefix with their assigned IPs."""
        await async_client.post("/api/site", json={"sitename": "hq.floor1", "sitefullname": "HQ 1"})
        await async_client.post("/api/site", json={"sitename": "hq.floor2", "sitefullname": "HQ 2"})
        await async_client.post("/api/site", json={"sitename": "dc.rack1", "sitefullname": "DC"})
        await async_client.post("/api/assigned", json={"ipaddress": "10.0.0.5", "sitename": "hq.floor2"})

        response = await async_client.get("/api/site/groups")
        assert response.status_code == 200
        groups = response.json()
        assert [g["prefix"] for g in groups] == ["hq", "dc"]
        hq_sites = groups[0]["sites"]
        assert [s["label"] for s in hq_sites] == ["floor1", "floor2"]
        assert hq_sites[1]["ips"] == ["10.0.0.5"]


class TestAssignedEndpoints:
    """Site assignment endpoint tests."""

    @pytest.mark.asyncio
    async def test_upsert_assignment_replaces_site(self, async_client: AsyncClient):
        """Re-assigning an IP moves it to the new site."""
        await async_client.post("/api/assigned", json={"ipaddress": "10.0.0.5", "sitename": "a"})
        response = await async_client.post(
            "/api/assigned", json={"ipaddress": "10.0.0.5", "sitename": "b"}
        )
        assert response.status_code == 200
        assert response.json()["affectedRows"] == 1

        assignments = (await async_client.get("/api/assigned")).json()
        assert assignments == [{"ipaddress": "10.0.0.5", "sitename": "b"}]

    @pytest.mark.asyncio
    async def test_assignment_invalid_ip(self, async_client: AsyncClient):
        """An invalid IP address is rejected with 400 and a per-field error."""
        response = await async_client.post(
            "/api/assigned", json={"ipaddress": "10.0.0.500", "sitename": "a"}
        )
        assert response.status_code == 400
        errors = response.json()["errors"]
        assert errors[0]["field"] == "ipaddress"
        assert not errors[0]["message"].startswith("Value error, ")

    @pytest.mark.asyncio
    async def test_delete_assignment(self, async_client: AsyncClient):
        await async_client.post("/api/assigned", json={"ipaddress": "10.0.0.5", "sitename": "a"})
        response = await async_client.request(
            "DELETE", "/api/assigned", json={"ipaddress": "10.0.0.5"}
        )
        assert response.status_code == 200
        assert response.json() == {"message": "IP address deleted successfully"}

        response = await async_client.request(
            "DELETE", "/api/assigned", json={"ipaddress": "10.0.0.5"}
        )
        assert response.status_code == 404
        assert response.json() == {"message": "IP address not found"}


class TestIPCheckEndpoints:
    """Device record endpoint tests."""

    @pytest.mark.asyncio
    async def test_upsert_creates_record_and_assignment(self, async_client: AsyncClient):
        """POST /api/ipcheck writes the device record and site assignment together."""
        payload = {
            "ip": "10.0.0.5",
            "sitename": "hq.main",
            "macaddress": "AA:BB:CC:DD:EE:FF",
            "device": "printer",
            "location": "room 1",
            "comment": "toner low",
            "modifiedby": "alice",
        }
        response = await async_client.post("/api/ipcheck", json=payload)
        assert response.status_code == 200
        assert response.json() == {"message": "Data upserted successfully"}

        records = (await async_client.get("/api/ipcheck")).json()
        assert len(records) == 1
        record = records[0]
        assert record["ipaddress"] == "10.0.0.5"
        assert record["macaddress"] == "AA:BB:CC:DD:EE:FF"
        assert record["device"] == "printer"
        assert record["sitename"] == "hq.main"
        assert record["modifiedby"] == "alice"
        assert record["modifieddate"] is not None

        assignments = (await async_client.get("/api/assigned")).json()
        assert assignments == [{"ipaddress": "10.0.0.5", "sitename": "hq.main"}]

    @pytest.mark.asyncio
    async def test_partial_upsert_keeps_other_fields(self, async_client: AsyncClient):
        """Fields left out of a later upsert keep their stored values."""
        await async_client.post(
            "/api/ipcheck",
            json={"ip": "10.0.0.5", "sitename": "hq.main", "device": "printer", "comment": "old"},
        )
        response = await async_client.post(
            "/api/ipcheck", json={"ip": "10.0.0.5", "location": "room 2"}
        )
        assert response.status_code == 200

        record = (await async_client.get("/api/ipcheck")).json()[0]
        assert record["device"] == "printer"
        assert record["comment"] == "old"
        assert record["location"] == "room 2"
        assert record["sitename"] == "hq.main"

    @pytest.mark.asyncio
    async def test_record_without_assignment_has_no_site(self, async_client: AsyncClient):
        await async_client.post("/api/ipcheck", json={"ip": "10.0.0.8", "device": "switch"})
        record = (await async_client.get("/api/ipcheck")).json()[0]
        assert record["sitename"] is None
        assert (await async_client.get("/api/assigned")).json() == []

    @pytest.mark.asyncio
    async def test_upsert_rejects_dash_mac(self, async_client: AsyncClient):
        """Only the colon-separated MAC form is accepted."""
        response = await async_client.post(
            "/api/ipcheck", json={"ip": "10.0.0.5", "macaddress": "AA-BB-CC-DD-EE-FF"}
        )
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Validation failed"
        assert "macaddress" in data["details"]

    @pytest.mark.asyncio
    async def test_upsert_requires_ip(self, async_client: AsyncClient):
        response = await async_client.post("/api/ipcheck", json={"device": "printer"})
        assert response.status_code == 400
        assert "ip" in [e["field"] for e in response.json()["errors"]]

    @pytest.mark.asyncio
    async def test_delete_removes_record_and_assignment(self, async_client: AsyncClient):
        """DELETE /api/ipcheck removes the device record and the assignment."""
        await async_client.post(
            "/api/ipcheck", json={"ip": "10.0.0.5", "sitename": "hq.main", "device": "printer"}
        )
        response = await async_client.delete("/api/ipcheck", params={"ip": "10.0.0.5"})
        assert response.status_code == 200
        assert response.json() == {"message": "IP deleted successfully"}

        assert (await async_client.get("/api/ipcheck")).json() == []
        assert (await async_client.get("/api/assigned")).json() == []

    @pytest.mark.asyncio
    async def test_delete_unknown_ip(self, async_client: AsyncClient):
        response = await async_client.delete("/api/ipcheck", params={"ip": "10.9.9.9"})
        assert response.status_code == 404
        assert response.json() == {"message": "IP address not found"}

    @pytest.mark.asyncio
    async def test_delete_without_ip(self, async_client: AsyncClient):
        response = await async_client.delete("/api/ipcheck")
        assert response.status_code == 400
        assert response.json()["error"] == "IP address is required"

    @pytest.mark.asyncio
    async def test_delete_invalid_ip(self, async_client: AsyncClient):
        response = await async_client.delete("/api/ipcheck", params={"ip": "not-an-ip"})
        assert response.status_code == 400


class TestRequestID:
    """Request ID header tests."""

    @pytest.mark.asyncio
    async def test_response_has_request_id_header(self, async_client: AsyncClient):
        """Any GET request should have X-Request-ID response header."""
        response = await async_client.get("/health")
        assert response.status_code == 200
        assert "X-Request-ID" in response.headers
        request_id = response.headers["X-Request-ID"]
        # Should be a valid UUID format (basic check)
        assert len(request_id) >= 36

    @pytest.mark.asyncio
    async def test_request_id_on_write(self, async_client: AsyncClient):
        """POST requests also include X-Request-ID header."""
        response = await async_client.post(
            "/api/site", json={"sitename": "rid-test", "sitefullname": "RID"}
        )
        assert response.status_code == 200
        assert "X-Request-ID" in response.headers
