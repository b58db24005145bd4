"""Template-based translation of quantum circuit code between libraries.

The converter is a collaborator of the conversion service, not part of it:
anything satisfying :class:`CodeConverter` can be injected through
``get_converter`` (tests use this to force failures).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

# purpose: map gate calls of one circuit library onto another using fixed templates
# status: active


@dataclass(frozen=True)
class ConversionResult:
    success: bool
    code: Optional[str] = None
    error: Optional[str] = None
    complexity: Optional[str] = None
    gate_count: int = 0


class CodeConverter(Protocol):
    def convert(self, source_library: str, target_library: str, source_code: str) -> ConversionResult:
        ...


@dataclass(frozen=True)
class _Target:
    imports: str
    circuit: str
    execution: str
    gates: dict[str, str] = field(default_factory=dict)


_CIRQ_IMPORTS = "import cirq\nimport numpy as np"
_CIRQ_CIRCUIT = "# Create qubits\nq0, q1 = cirq.LineQubit.range(2)\n\n# Create a circuit\ncircuit = cirq.Circuit()"
_CIRQ_EXECUTION = (
    "# Simulate the circuit\nsimulator = cirq.Simulator()\n"
    "result = simulator.run(circuit, repetitions=1024)\nprint(result.histogram(key='result'))"
)
_BRAKET_IMPORTS = "import braket.circuits as circuits\nfrom braket.devices import LocalSimulator"
_BRAKET_CIRCUIT = "# Create a quantum circuit\ncircuit = circuits.Circuit()"
_BRAKET_EXECUTION = (
    "# Execute the circuit\ndevice = LocalSimulator()\n"
    "result = device.run(circuit, shots=1024).result()\nprint(result.measurement_counts)"
)
_QISKIT_IMPORTS = "from qiskit import QuantumCircuit, execute, Aer"
_QISKIT_CIRCUIT = "# Create a quantum circuit\nqc = QuantumCircuit(2, 2)"
_QISKIT_EXECUTION = (
    "# Execute the circuit\nbackend = Aer.get_backend('qasm_simulator')\n"
    "job = execute(qc, backend, shots=1024)\nresult = job.result()\n"
    "counts = result.get_counts(qc)\nprint(counts)"
)
_PENNYLANE_IMPORTS = "import pennylane as qml\nimport numpy as np"
_PENNYLANE_CIRCUIT = (
    '# Create a quantum device\ndev = qml.device("default.qubit", wires=2)\n\n'
    "@qml.qnode(dev)\ndef circuit():\n    # Quantum operations go here\n    return qml.counts()"
)
_PENNYLANE_EXECUTION = "# Execute the circuit\nresult = circuit()\nprint(result)"

_LOWER_GATES = ("h", "x", "y", "z", "cz", "swap", "measure")

TEMPLATES: dict[str, dict[str, _Target]] = {
    "qiskit": {
        "cirq": _Target(
            _CIRQ_IMPORTS, _CIRQ_CIRCUIT, _CIRQ_EXECUTION,
            {**{g: f"cirq.{g.upper()}" for g in _LOWER_GATES}, "cx": "cirq.CNOT",
             "measure": "cirq.measure", "measure_all": "cirq.measure"},
        ),
        "braket": _Target(
            _BRAKET_IMPORTS, _BRAKET_CIRCUIT, _BRAKET_EXECUTION,
            {**{g: f"circuit.{g}" for g in _LOWER_GATES}, "cx": "circuit.cnot"},
        ),
        "pennylane": _Target(
            _PENNYLANE_IMPORTS, _PENNYLANE_CIRCUIT, _PENNYLANE_EXECUTION,
            {"h": "qml.Hadamard", "x": "qml.PauliX", "y": "qml.PauliY", "z": "qml.PauliZ",
             "cx": "qml.CNOT", "cz": "qml.CZ", "swap": "qml.SWAP", "measure": "qml.measure"},
        ),
    },
    "cirq": {
        "qiskit": _Target(
            _QISKIT_IMPORTS, _QISKIT_CIRCUIT, _QISKIT_EXECUTION,
            {**{g.upper(): f"qc.{g}" for g in ("h", "x", "y", "z", "cz", "swap")},
             "CNOT": "qc.cx", "measure": "qc.measure"},
        ),
        "braket": _Target(
            _BRAKET_IMPORTS, _BRAKET_CIRCUIT, _BRAKET_EXECUTION,
            {**{g.upper(): f"circuit.{g}" for g in ("h", "x", "y", "z", "cz", "swap")},
             "CNOT": "circuit.cnot", "measure": "circuit.measure"},
        ),
    },
    "braket": {
        "qiskit": _Target(
            _QISKIT_IMPORTS, _QISKIT_CIRCUIT, _QISKIT_EXECUTION,
            {**{g: f"qc.{g}" for g in _LOWER_GATES}, "cnot": "qc.cx"},
        ),
        "cirq": _Target(
            _CIRQ_IMPORTS, _CIRQ_CIRCUIT, _CIRQ_EXECUTION,
            {**{g: f"cirq.{g.upper()}" for g in _LOWER_GATES}, "cnot": "cirq.CNOT",
             "measure": "cirq.measure"},
        ),
    },
}

_RECV = r"\w*"
_ONE = r"\((\d+)\)"
_TWO = r"\((\d+),\s*(\d+)\)"

PATTERNS: dict[str, tuple[re.Pattern, dict[str, re.Pattern]]] = {
    "qiskit": (
        re.compile(r"QuantumCircuit\((\d+)(?:,\s*(\d+))?\)"),
        {
            **{g: re.compile(rf"{_RECV}\.{g}{_ONE}") for g in ("h", "x", "y", "z")},
            **{g: re.compile(rf"{_RECV}\.{g}{_TWO}") for g in ("cx", "cz", "swap")},
            "measure": re.compile(rf"{_RECV}\.measure\(\)"),
            "measure_all": re.compile(rf"{_RECV}\.measure_all\(\)"),
        },
    ),
    "cirq": (
        re.compile(r"LineQubit\.range\((\d+)\)"),
        {
            **{g: re.compile(rf"{_RECV}\.append\(cirq\.{g}\(q(\d+)\)\)") for g in ("H", "X", "Y", "Z")},
            **{g: re.compile(rf"{_RECV}\.append\(cirq\.{g}\(q(\d+),\s*q(\d+)\)\)") for g in ("CNOT", "CZ", "SWAP")},
            "measure": re.compile(rf"{_RECV}\.append\(cirq\.measure\(q(\d+),\s*q(\d+),\s*key='result'\)\)"),
        },
    ),
    "braket": (
        re.compile(r"Circuit\(\)"),
        {
            **{g: re.compile(rf"{_RECV}\.{g}{_ONE}") for g in ("h", "x", "y", "z")},
            **{g: re.compile(rf"{_RECV}\.{g}{_TWO}") for g in ("cnot", "cz", "swap")},
            "measure": re.compile(rf"{_RECV}\.measure\(\)"),
        },
    ),
}


def _qubit_names(count: int) -> str:
    return ", ".join(f"q{i}" for i in range(count))


def _complexity(gate_count: int) -> str:
    if gate_count > 10:
        return "high"
    if gate_count > 5:
        return "medium"
    return "low"


class TemplateConverter:
    """Default converter: rewrites recognised gate calls, keeps everything else."""

    def supports(self, source_library: str, target_library: str) -> bool:
        return target_library in TEMPLATES.get(source_library, {})

    def convert(self, source_library: str, target_library: str, source_code: str) -> ConversionResult:
        logger.info("converting %s -> %s", source_library, target_library)
        if not self.supports(source_library, target_library):
            return ConversionResult(
                success=False,
                error=f"Conversion from {source_library} to {target_library} is not supported",
            )
        template = TEMPLATES[source_library][target_library]
        circuit_pattern, gate_patterns = PATTERNS[source_library]

        qubits = None
        circuit_match = circuit_pattern.search(source_code)
        if circuit_match and circuit_match.groups():
            qubits = int(circuit_match.group(1))

        out = [template.imports, "", self._circuit_block(template, target_library, qubits), ""]
        gate_count = 0
        for line in source_code.split("\n"):
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                out.append(line)
                continue
            if stripped.startswith("import") or stripped.startswith("from"):
                continue
            converted = line
            for source_gate, target_gate in template.gates.items():
                pattern = gate_patterns.get(source_gate)
                if pattern is None or not pattern.search(line):
                    continue
                converted = self._rewrite(
                    line, pattern, target_library, source_gate, target_gate, qubits
                )
                gate_count += 1
                break
            out.append(converted)
        out.append("")
        out.append(template.execution)

        logger.info("conversion completed, %d gates converted", gate_count)
        return ConversionResult(
            success=True,
            code="\n".join(out),
            complexity=_complexity(gate_count),
            gate_count=gate_count,
        )

    @staticmethod
    def _circuit_block(template: _Target, target_library: str, qubits: int | None) -> str:
        if qubits is None:
            return template.circuit
        if target_library == "qiskit":
            return f"# Create a quantum circuit\nqc = QuantumCircuit({qubits}, {qubits})"
        if target_library == "cirq":
            if qubits == 1:
                line = "q0 = cirq.LineQubit(0)"
            else:
                line = f"{_qubit_names(qubits)} = cirq.LineQubit.range({qubits})"
            return f"# Create qubits\n{line}\n\n# Create a circuit\ncircuit = cirq.Circuit()"
        return template.circuit

    @staticmethod
    def _render(target_library, source_gate, target_gate, args, qubits) -> str:
        if target_library == "cirq":
            if source_gate in ("measure", "measure_all"):
                return f"circuit.append(cirq.measure({_qubit_names(qubits or 2)}, key='result'))"
            return f"circuit.append({target_gate}({', '.join(f'q{a}' for a in args)}))"
        if target_library == "pennylane":
            if len(args) == 1:
                return f"{target_gate}(wires={args[0]})"
            if args:
                return f"{target_gate}(wires=[{', '.join(args)}])"
            return f"{target_gate}(wires=0)"
        if target_library == "qiskit" and source_gate == "measure":
            return "qc.measure_all()"
        return f"{target_gate}({', '.join(args)})"

    def _rewrite(self, line, pattern, target_library, source_gate, target_gate, qubits) -> str:
        def repl(match):
            args = [a for a in match.groups() if a is not None]
            return self._render(target_library, source_gate, target_gate, args, qubits)

        return pattern.sub(repl, line)


def get_converter() -> CodeConverter:
    return TemplateConverter()
