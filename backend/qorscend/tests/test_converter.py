from qorscend.converter import TemplateConverter


def test_qiskit_to_cirq_uses_declared_qubits():
    source = "from qiskit import QuantumCircuit\nqc = QuantumCircuit(3)\n# prepare\nqc.h(0)\nqc.measure_all()"
    result = TemplateConverter().convert("qiskit", "cirq", source)
    assert result.success
    assert result.code.startswith("import cirq")
    assert "q0, q1, q2 = cirq.LineQubit.range(3)" in result.code
    assert "# prepare" in result.code
    assert "circuit.append(cirq.measure(q0, q1, q2, key='result'))" in result.code
    assert "from qiskit" not in result.code
    assert result.gate_count == 2


def test_qiskit_to_pennylane_uses_wires():
    source = "qc = QuantumCircuit(2, 2)\nqc.x(1)\nqc.cz(0, 1)"
    code = TemplateConverter().convert("qiskit", "pennylane", source).code
    assert "qml.PauliX(wires=1)" in code
    assert "qml.CZ(wires=[0, 1])" in code


def test_cirq_to_qiskit_measurement():
    source = (
        "q0, q1 = cirq.LineQubit.range(2)\n"
        "circuit.append(cirq.H(q0))\n"
        "circuit.append(cirq.CNOT(q0, q1))\n"
        "circuit.append(cirq.measure(q0, q1, key='result'))"
    )
    result = TemplateConverter().convert("cirq", "qiskit", source)
    assert "qc = QuantumCircuit(2, 2)" in result.code
    assert "qc.h(0)" in result.code
    assert "qc.cx(0, 1)" in result.code
    assert "qc.measure_all()" in result.code


def test_complexity_grows_with_gate_count():
    converter = TemplateConverter()
    medium = "\n".join(f"qc.h({i})" for i in range(6))
    high = "\n".join(f"qc.x({i})" for i in range(11))
    assert converter.convert("braket", "qiskit", medium).complexity == "medium"
    assert converter.convert("braket", "qiskit", high).complexity == "high"


def test_unsupported_pair():
    result = TemplateConverter().convert("pyquil", "qiskit", "H 0")
    assert not result.success
    assert result.error == "Conversion from pyquil to qiskit is not supported"
