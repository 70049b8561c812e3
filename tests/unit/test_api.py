"""
Unit Tests - HTTP API
"""
import pytest
from fastapi.testclient import TestClient

from salesrecon.serving.api import create_app


@pytest.fixture
def client(service):
    with TestClient(create_app(service)) as test_client:
        yield test_client


def upload(client, path, content, filename="report.csv"):
    return client.post(path, files={"file": (filename, content.encode("utf-8"), "text/csv")})


class TestHealth:
    """Tests for health endpoints"""
    
    def test_health(self, client):
        """Test health reports the store and state sizes"""
        response = client.get("/api/v1/health")
        
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["checks"]["state"]["products"] == 4
    
    def test_ready(self, client):
        """Test readiness"""
        assert client.get("/api/v1/health/ready").json() == {"status": "ready"}
    
    def test_request_id_echoed(self, client):
        """Test the caller's request id comes back with security headers"""
        response = client.get("/api/v1/health/live", headers={"X-Request-ID": "abc"})
        
        assert response.headers["X-Request-ID"] == "abc"
        assert response.headers["X-Content-Type-Options"] == "nosniff"


class TestSalesImportFlow:
    """Tests for the two-phase import over HTTP"""
    
    def test_review_then_commit(self, client, service, sales_csv):
        """Test upload, blocked commit, approval and commit"""
        response = upload(client, "/api/v1/imports/sales", sales_csv)
        assert response.status_code == 200
        session = response.json()
        assert session["status"] == "review"
        assert session["read"]["rows"] == 3
        assert [c["importSku"] for c in session["candidates"]] == ["MASTER-UK_1"]
        
        blocked = client.post(f"/api/v1/imports/sales/{session['id']}/commit")
        assert blocked.status_code == 409
        assert blocked.json()["error"] == "ReviewPendingError"
        
        decided = client.post(
            f"/api/v1/imports/sales/{session['id']}/decisions",
            json={"importSku": "MASTER-UK_1", "approve": True},
        )
        assert decided.json()["status"] == "ready"
        
        committed = client.post(f"/api/v1/imports/sales/{session['id']}/commit")
        assert committed.status_code == 200
        assert committed.json()["updated"] == ["MASTER-UK"]
        assert service.learned_aliases == {"MASTER-UK_1": "MASTER-UK"}
        
        history = client.get("/api/v1/history/prices/MASTER-UK").json()
        assert {entry["orderId"] for entry in history} == {"A-1", "E-7"}
    
    def test_cancel(self, client, sales_csv):
        """Test a cancelled session cannot be committed"""
        session = upload(client, "/api/v1/imports/sales", sales_csv).json()
        
        cancelled = client.delete(f"/api/v1/imports/sales/{session['id']}")
        assert cancelled.json()["status"] == "cancelled"
        
        assert client.post(f"/api/v1/imports/sales/{session['id']}/commit").status_code == 409
    
    def test_unsupported_file(self, client):
        """Test unreadable uploads are rejected"""
        response = upload(client, "/api/v1/imports/sales", "hello", filename="notes.txt")
        
        assert response.status_code == 422
        assert response.json()["error"] == "ParseError"
    
    def test_refund_upload(self, client):
        """Test refund report upload and idempotent re-upload"""
        content = "SKU,Refund Amount,Creation Time,Reason\nBF10,4.50,2025-03-10,Broken\n"
        
        first = upload(client, "/api/v1/imports/refunds", content).json()
        second = upload(client, "/api/v1/imports/refunds", content).json()
        
        assert first["merge"]["inserted"] == 1
        assert second["merge"]["skipped"] == 1

    
    def test_mapping_upload(self, client, service):
        """Test a mapping report links aliases for one platform"""
        content = "Master SKU,Platform SKU\nBF10,BF10-AMZ\nNOPE,X-1\n"
        
        response = client.post(
            "/api/v1/imports/mappings",
            params={"platform": "Amazon", "mode": "replace"},
            files={"file": ("mappings.csv", content.encode("utf-8"), "text/csv")},
        )
        
        assert response.status_code == 200
        body = response.json()
        assert body["read"]["rows"] == 2
        assert body["updated"] == ["BF10"]
        assert body["unknown_skus"] == ["NOPE"]
        assert service.learned_aliases["BF10-AMZ"] == "BF10"
    
    def test_mapping_upload_needs_platform(self, client):
        """Test the platform query parameter is required"""
        response = upload(client, "/api/v1/imports/mappings", "SKU,Alias\nBF10,B-1\n")
        
        assert response.status_code == 422


class TestProducts:
    """Tests for product endpoints"""
    
    def test_list_and_filter(self, client):
        """Test paging and search"""
        body = client.get("/api/v1/products", params={"search": "bf"}).json()
        
        assert body["total"] == 2
        assert {p["sku"] for p in body["items"]} == {"BF10", "BF100"}
    
    def test_unknown_product(self, client):
        """Test unknown SKUs map to 404"""
        response = client.get("/api/v1/products/NOPE")
        
        assert response.status_code == 404
        assert response.json()["details"] == {"sku": "NOPE"}
    
    def test_overrides(self, client):
        """Test manual overrides lock the cost"""
        response = client.patch("/api/v1/products/BF10/overrides", json={"costPrice": 3.25})
        
        assert response.status_code == 200
        assert response.json()["costLocked"] is True
    
    def test_bad_overrides(self, client):
        """Test floor above ceiling is a client error"""
        response = client.patch(
            "/api/v1/products/BF10/overrides",
            json={"floorPrice": 20, "ceilingPrice": 10},
        )
        
        assert response.status_code == 400


class TestConfigAndBackup:
    """Tests for configuration and backup endpoints"""
    
    def test_lookback_all(self, client):
        """Test the ALL lookback"""
        response = client.patch("/api/v1/config", json={"lookbackDays": "ALL"})
        
        assert response.status_code == 200
        assert response.json()["lookbackDays"] == 9999
    
    def test_restore_rejects_incomplete_bundle(self, client, service):
        """Test malformed bundles are 422 and leave the catalog"""
        response = client.post("/api/v1/restore", json={"products": []})
        
        assert response.status_code == 422
        assert len(service.catalog) == 4
    
    def test_backup_round_trip(self, client):
        """Test an exported bundle restores"""
        exported = client.get("/api/v1/backup")
        assert exported.headers["Cache-Control"] == "no-store"
        bundle = exported.json()
        
        response = client.post("/api/v1/restore", json=bundle)
        
        assert response.status_code == 200
        assert response.json()["products"] == 4
