import uuid

import pytest

from .conftest import client, ensure_auth_headers, register_user, TestingSessionLocal
from qorscend import models
from qorscend.converter import ConversionResult, get_converter
from qorscend.main import app
from qorscend.services import conversions

BELL = """from qiskit import QuantumCircuit
qc = QuantumCircuit(2, 2)
qc.h(0)
qc.cx(0, 1)
qc.measure_all()"""


def _conversion(source="qiskit", target="cirq", code=BELL, **extra):
    return {"sourceLibrary": source, "targetLibrary": target, "sourceCode": code, **extra}


class BrokenConverter:
    def convert(self, source_library, target_library, source_code):
        return ConversionResult(success=False, error="Parser exploded")


@pytest.fixture
def broken_converter():
    app.dependency_overrides[get_converter] = lambda: BrokenConverter()
    yield
    app.dependency_overrides.pop(get_converter, None)


def _stats(email):
    session = TestingSessionLocal()
    try:
        return session.query(models.User).filter_by(email=email).one().stats
    finally:
        session.close()


def test_convert_records_history_and_bumps_stats(client):
    token, email, _ = register_user(client)
    headers = {"Authorization": f"Bearer {token}"}
    resp = client.post("/api/convert", json=_conversion(tags=["bell"]), headers=headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    conversion = data["conversion"]
    assert conversion["status"] == "success"
    assert "circuit.append(cirq.H(q0))" in conversion["convertedCode"]
    assert "circuit.append(cirq.CNOT(q0, q1))" in conversion["convertedCode"]
    assert conversion["metadata"]["linesOfCode"] == 5
    assert conversion["tags"] == ["bell"]
    assert data["complexity"] == "low"
    uuid.UUID(conversion["id"])
    assert _stats(email)["codeConversions"] == 1

    history = client.get("/api/history", headers=headers).json()["data"]
    assert history["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}
    assert history["conversions"][0]["id"] == conversion["id"]


def test_identical_libraries_rejected_before_anything_else(client):
    headers = ensure_auth_headers(client)
    resp = client.post("/api/convert", json=_conversion(target="qiskit", code=""), headers=headers)
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Source and target libraries must be different"}

    non_string = client.post("/api/convert", json=_conversion(target="qiskit", code=5), headers=headers)
    assert non_string.status_code == 400
    assert non_string.json()["error"] == "Source and target libraries must be different"


def test_request_validation_order(client):
    headers = ensure_auth_headers(client)
    cases = [
        (_conversion(source="quipper"), "Invalid source library"),
        (_conversion(target="quipper"), "Invalid target library"),
        (_conversion(code=""), "Source code must be between 1 and 10000 characters"),
        (_conversion(code="x" * 10001), "Source code must be between 1 and 10000 characters"),
        (_conversion(code=5), "Source code must be between 1 and 10000 characters"),
        (_conversion(tags="bell"), "Tags must be an array"),
    ]
    for payload, message in cases:
        resp = client.post("/api/qcode-convert/convert", json=payload, headers=headers)
        assert resp.status_code == 400, payload
        assert resp.json()["error"] == message


def test_unsupported_pair_tolerant_returns_400_and_saves_nothing(client):
    token, email, _ = register_user(client)
    headers = {"Authorization": f"Bearer {token}"}
    resp = client.post("/api/convert", json=_conversion(source="cirq", target="pennylane"), headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Conversion from cirq to pennylane is not supported"
    assert client.get("/api/history", headers=headers).json()["data"]["conversions"] == []
    assert _stats(email)["codeConversions"] == 0


def test_failed_conversion_strict_is_recorded(client, broken_converter):
    token, email, _ = register_user(client)
    headers = {"Authorization": f"Bearer {token}"}
    resp = client.post("/api/qcode-convert/convert", json=_conversion(), headers=headers)
    assert resp.status_code == 200
    conversion = resp.json()["data"]["conversion"]
    assert conversion["status"] == "error"
    assert conversion["errorMessage"] == "Parser exploded"
    assert conversion["convertedCode"] is None
    assert _stats(email)["codeConversions"] == 0

    history = client.get(
        "/api/qcode-convert/history", params={"status": "error"}, headers=headers
    ).json()["data"]
    assert [c["id"] for c in history["conversions"]] == [conversion["id"]]


def test_persistence_failure_policies(client, monkeypatch):
    def refuse(db, record):
        raise RuntimeError("disk full")

    monkeypatch.setattr(conversions, "_persist", refuse)
    token, email, _ = register_user(client)
    headers = {"Authorization": f"Bearer {token}"}

    tolerant = client.post("/api/convert", json=_conversion(), headers=headers)
    assert tolerant.status_code == 200
    assert tolerant.json()["data"]["conversion"]["id"] == "temp-id"
    assert _stats(email)["codeConversions"] == 1

    strict = client.post("/api/qcode-convert/convert", json=_conversion(), headers=headers)
    assert strict.status_code == 500
    assert strict.json() == {"success": False, "error": "Failed to save conversion"}


def test_history_filters_and_pagination(client):
    headers = ensure_auth_headers(client)
    for _ in range(3):
        client.post("/api/convert", json=_conversion(), headers=headers)
    client.post(
        "/api/convert",
        json=_conversion(source="braket", target="qiskit", code="circuit = Circuit()\ncircuit.h(0)"),
        headers=headers,
    )

    page = client.get("/api/history", params={"page": 2, "limit": 3}, headers=headers).json()["data"]
    assert page["pagination"] == {"page": 2, "limit": 3, "total": 4, "pages": 2}
    assert len(page["conversions"]) == 1

    braket = client.get("/api/history", params={"sourceLibrary": "braket"}, headers=headers).json()["data"]
    assert braket["pagination"]["total"] == 1
    assert "qc.h(0)" in braket["conversions"][0]["convertedCode"]


def test_delete_conversion_ownership(client):
    owner = ensure_auth_headers(client)
    other = ensure_auth_headers(client)
    conversion_id = client.post("/api/convert", json=_conversion(), headers=owner).json()["data"]["conversion"]["id"]

    forbidden = client.delete(f"/api/conversion/{conversion_id}", headers=other)
    assert forbidden.status_code == 403
    assert forbidden.json()["error"] == "Not authorized to delete this conversion"

    ok = client.delete(f"/api/conversion/{conversion_id}", headers=owner)
    assert ok.status_code == 200
    missing = client.delete(f"/api/conversion/{conversion_id}", headers=owner)
    assert missing.status_code == 404
    assert missing.json()["error"] == "Conversion not found"


def test_convert_requires_auth(client):
    resp = client.post("/api/convert", json=_conversion())
    assert resp.status_code == 401
