import uuid

from locust import HttpUser, task, between

BELL = "qc = QuantumCircuit(2, 2)\nqc.h(0)\nqc.cx(0, 1)\nqc.measure_all()"


class ConverterUser(HttpUser):
    wait_time = between(1, 3)

    def on_start(self):
        payload = {"name": "Load Tester", "email": f"load-{uuid.uuid4().hex[:8]}@example.com", "password": "password"}
        r = self.client.post("/api/auth/register", json=payload)
        if r.status_code != 201:
            r = self.client.post("/api/auth/login", json={"email": payload["email"], "password": payload["password"]})
        token = r.json().get("token")
        self.headers = {"Authorization": f"Bearer {token}"}

    @task(3)
    def convert(self):
        data = {"sourceLibrary": "qiskit", "targetLibrary": "cirq", "sourceCode": BELL}
        self.client.post("/api/convert", json=data, headers=self.headers)

    @task(2)
    def history(self):
        self.client.get("/api/history", headers=self.headers)

    @task(1)
    def billing_overview(self):
        self.client.get("/api/billing/overview", headers=self.headers)
