"""Immutable reference data: plan tiers, workflow templates and the library catalog."""

from __future__ import annotations

from dataclasses import dataclass, field

from fastapi import Request

# purpose: hold static catalogs built once at startup and injected into handlers
# status: active

UNLIMITED = -1


@dataclass(frozen=True)
class PlanLimits:
    code_conversions: int
    benchmarks: int
    data_files: int
    storage: int  # MB
    workflows: int

    def as_dict(self) -> dict[str, int]:
        return {
            "codeConversions": self.code_conversions,
            "benchmarks": self.benchmarks,
            "dataFiles": self.data_files,
            "storage": self.storage,
            "workflows": self.workflows,
        }


@dataclass(frozen=True)
class PlanTier:
    id: str
    name: str
    price: float
    description: str
    features: tuple[str, ...]
    limits: PlanLimits
    currency: str = "USD"
    period: str = "month"

    @property
    def is_paid(self) -> bool:
        return self.price > 0

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "currency": self.currency,
            "period": self.period,
            "description": self.description,
            "features": list(self.features),
            "limits": self.limits.as_dict(),
        }


@dataclass(frozen=True)
class TemplateStep:
    id: str
    type: str
    name: str
    description: str


@dataclass(frozen=True)
class WorkflowTemplate:
    id: str
    name: str
    description: str
    steps: tuple[TemplateStep, ...]
    popular: bool = False

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "steps": [
                {"id": s.id, "type": s.type, "name": s.name, "description": s.description}
                for s in self.steps
            ],
        }


@dataclass(frozen=True)
class LibrarySeed:
    name: str
    display_name: str
    description: str
    version: str
    features: tuple[str, ...]
    documentation_url: str
    popularity: str
    color: str


@dataclass(frozen=True)
class Catalog:
    plans: tuple[PlanTier, ...]
    templates: tuple[WorkflowTemplate, ...]
    libraries: tuple[LibrarySeed, ...]
    _plan_index: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_plan_index", {plan.id: plan for plan in self.plans})

    def plan(self, plan_id: str | None) -> PlanTier | None:
        if not plan_id:
            return None
        return self._plan_index.get(plan_id.strip().lower())

    def template(self, template_id: str) -> WorkflowTemplate | None:
        return next((t for t in self.templates if t.id == template_id), None)

    def standard_templates(self) -> list[WorkflowTemplate]:
        return [t for t in self.templates if not t.popular]

    def popular_templates(self) -> list[WorkflowTemplate]:
        return [t for t in self.templates if t.popular]


def build_catalog() -> Catalog:
    """Build the default catalog. Called once per process by the app factory."""

    plans = (
        PlanTier(
            id="free",
            name="Free",
            price=0,
            description="Perfect for getting started with quantum computing",
            features=(
                "10 code conversions per month",
                "5 benchmarks per month",
                "5 data files per month",
                "100 MB storage",
                "3 workflows",
                "Community support",
            ),
            limits=PlanLimits(10, 5, 5, 100, 3),
        ),
        PlanTier(
            id="pro",
            name="Pro",
            price=29,
            description="For professionals and teams",
            features=(
                "1,000 code conversions per month",
                "500 benchmarks per month",
                "500 data files per month",
                "10 GB storage",
                "100 workflows",
                "Priority support",
                "Advanced analytics",
            ),
            limits=PlanLimits(1000, 500, 500, 10000, 100),
        ),
        PlanTier(
            id="enterprise",
            name="Enterprise",
            price=99,
            description="For large organizations",
            features=(
                "Unlimited code conversions",
                "Unlimited benchmarks",
                "Unlimited data files",
                "100 GB storage",
                "Unlimited workflows",
                "Dedicated support",
                "Custom integrations",
                "SLA guarantee",
            ),
            limits=PlanLimits(UNLIMITED, UNLIMITED, UNLIMITED, 100000, UNLIMITED),
        ),
    )

    templates = (
        WorkflowTemplate(
            id="tmpl-convert-benchmark",
            name="Convert & Benchmark",
            description="Convert quantum code then benchmark across providers.",
            steps=(
                TemplateStep("step1", "convert", "Code Conversion", "Convert code between libraries"),
                TemplateStep("step2", "benchmark", "Benchmark", "Run performance benchmarks"),
            ),
        ),
        WorkflowTemplate(
            id="tmpl-clean-visualize",
            name="Clean & Visualize",
            description="Clean experimental data and prepare for visualization.",
            steps=(TemplateStep("step1", "clean", "Data Clean", "Normalize and clean data"),),
        ),
        WorkflowTemplate(
            id="tmpl-quick-benchmark",
            name="Quick Benchmark",
            description="Benchmark against common providers in one click.",
            steps=(TemplateStep("step1", "benchmark", "Benchmark", "Run quick benchmark"),),
            popular=True,
        ),
        WorkflowTemplate(
            id="tmpl-clean-basic",
            name="Basic Data Clean",
            description="Remove outliers and normalize your dataset.",
            steps=(TemplateStep("step1", "clean", "Data Clean", "Basic cleaning operations"),),
            popular=True,
        ),
    )

    libraries = (
        LibrarySeed(
            "qiskit", "Qiskit", "IBM's open-source quantum computing framework", "0.45.0",
            ("Circuit construction", "Quantum algorithms", "Hardware backends", "Visualization tools"),
            "https://qiskit.org/documentation/", "High", "bg-blue-500/10 text-blue-500",
        ),
        LibrarySeed(
            "cirq", "Cirq", "Google's quantum computing framework for NISQ circuits", "1.3.0",
            ("NISQ circuits", "Quantum simulators", "Hardware integration", "Optimization tools"),
            "https://quantumai.google/cirq", "High", "bg-green-500/10 text-green-500",
        ),
        LibrarySeed(
            "braket", "Amazon Braket", "AWS quantum computing service with multiple backends", "1.73.0",
            ("Cloud quantum computing", "Multiple backends", "Hybrid algorithms", "Cost optimization"),
            "https://docs.aws.amazon.com/braket/", "Medium", "bg-orange-500/10 text-orange-500",
        ),
        LibrarySeed(
            "pennylane", "PennyLane", "Quantum machine learning library with automatic differentiation", "0.33.0",
            ("Quantum ML", "Automatic differentiation", "Hybrid computing", "Optimization"),
            "https://pennylane.ai/", "Medium", "bg-purple-500/10 text-purple-500",
        ),
        LibrarySeed(
            "pyquil", "PyQuil", "Rigetti's quantum programming language", "3.0.0",
            ("Quantum programming", "Rigetti hardware access", "Quantum algorithms", "Simulation tools"),
            "https://pyquil-docs.rigetti.com/", "Low", "bg-cyan-500/10 text-cyan-500",
        ),
    )

    return Catalog(plans=plans, templates=templates, libraries=libraries)


def get_catalog(request: Request) -> Catalog:
    return request.app.state.catalog
