from .conftest import client, TestingSessionLocal
from qorscend import models


def _clear(model):
    session = TestingSessionLocal()
    try:
        session.query(model).delete()
        session.commit()
    finally:
        session.close()


def test_libraries_auto_seed_and_filter(client):
    _clear(models.QuantumLibrary)
    empty = client.get("/api/quantum-libraries", params={"autoSeed": "false"})
    assert empty.json()["data"] == []

    resp = client.get("/api/quantum-libraries")
    assert resp.status_code == 200
    names = [lib["name"] for lib in resp.json()["data"]]
    assert names == sorted(["qiskit", "cirq", "braket", "pennylane", "pyquil"])
    qiskit = next(lib for lib in resp.json()["data"] if lib["name"] == "qiskit")
    assert qiskit["displayName"] == "Qiskit"
    assert qiskit["docs"].startswith("https://qiskit.org")

    filtered = client.get("/api/quantum-libraries", params={"library": "QUIL", "limit": 3}).json()["data"]
    assert [lib["name"] for lib in filtered] == ["pyquil"]


def test_seed_is_idempotent(client):
    _clear(models.QuantumLibrary)
    first = client.post("/api/quantum-libraries/seed").json()
    assert first["count"] == 5
    assert first["message"] == "Seeded quantum libraries"
    second = client.post("/api/quantum-libraries/seed").json()
    assert second == {"success": True, "message": "Libraries already seeded", "count": 5}


def test_benchmark_reads(client):
    _clear(models.ProviderMetrics)
    empty = client.get("/api/qbenchmark-live/status").json()["data"]
    assert empty == {"averageQueueTime": 0, "averageCost": 0, "onlineBackends": 0, "averageErrorRate": 0}

    session = TestingSessionLocal()
    try:
        session.add_all(
            [
                models.ProviderMetrics(
                    provider="IBM Quantum", backend_name="ibm_kyiv", backend_qubits=127,
                    queue_time=10, cost_per_shot=0.002, error_rate=0.01, availability=99.0,
                ),
                models.ProviderMetrics(
                    provider="IBM Quantum", backend_name="ibm_osaka", backend_qubits=127,
                    queue_time=30, cost_per_shot=0.004, error_rate=0.03, availability=97.0, status="maintenance",
                ),
                models.ProviderMetrics(
                    provider="IonQ", backend_name="aria-1", backend_qubits=25, backend_type="trapped-ion",
                    queue_time=20, cost_per_shot=0.03, error_rate=0.02, availability=95.0,
                ),
            ]
        )
        session.commit()
    finally:
        session.close()

    providers = client.get("/api/qbenchmark-live/providers").json()["data"]
    assert providers["totalProviders"] == 2
    assert providers["totalBackends"] == 3
    ibm = next(p for p in providers["providers"] if p["name"] == "IBM Quantum")
    assert {b["name"] for b in ibm["backends"]} == {"ibm_kyiv", "ibm_osaka"}

    status = client.get("/api/qbenchmark-live/status").json()["data"]
    assert status["averageQueueTime"] == 20
    assert status["onlineBackends"] == 2
    assert abs(status["averageErrorRate"] - 0.02) < 1e-9


def test_health_and_metrics(client):
    health = client.get("/api/health")
    assert health.json()["data"]["status"] == "ok"
    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert b"request_count" in metrics.content


def test_unknown_route_uses_envelope(client):
    resp = client.get("/api/does-not-exist")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Not Found"}
