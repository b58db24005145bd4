import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Text,
    Float,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship, validates

from .database import Base
from .errors import ValidationError

LIBRARIES = ("qiskit", "cirq", "braket", "pennylane", "pyquil")
TIERS = ("free", "pro", "enterprise")
THEMES = ("light", "dark", "system")
PROVIDERS = (
    "IBM Quantum",
    "Google Quantum AI",
    "Amazon Braket",
    "Xanadu",
    "Rigetti",
    "IonQ",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_choice(field: str, value, choices, *, nullable: bool = False):
    if value is None and nullable:
        return value
    if value not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")
    return value


def _check_length(field: str, value, limit: int, *, required: bool = False):
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return value
    value = value.strip()
    if required and not value:
        raise ValidationError(f"{field} is required")
    if len(value) > limit:
        raise ValidationError(f"{field} cannot be more than {limit} characters")
    return value


def default_preferences() -> dict:
    return {
        "theme": "system",
        "notifications": {"email": True, "push": True},
        "appearance": {
            "theme": "system",
            "colorScheme": "blue",
            "compactMode": False,
            "showAnimations": True,
        },
    }


def default_tool_preferences() -> dict:
    return {
        "autoSaveConversions": False,
        "liveBenchmarks": False,
        "autoProcessData": False,
        "defaultQuantumLibrary": "qiskit",
        "preferredChartType": "line",
    }


def default_data_privacy() -> dict:
    return {
        "dataCollection": True,
        "analytics": True,
        "marketingCommunications": False,
        "dataRetention": "1-year",
    }


class User(Base):
    __tablename__ = "users"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    role = Column(String, default="user", nullable=False)
    avatar = Column(String, default="")
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime, nullable=True)
    first_name = Column(String(50))
    last_name = Column(String(50))
    organization = Column(String)
    preferences = Column(JSON, default=default_preferences)
    tool_preferences = Column(JSON, default=default_tool_preferences)
    data_privacy = Column(JSON, default=default_data_privacy)
    code_conversions = Column(Integer, default=0, nullable=False)
    benchmarks_run = Column(Integer, default=0, nullable=False)
    data_files_processed = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    subscription = relationship(
        "Subscription", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    payment_methods = relationship(
        "PaymentMethod", back_populates="user", cascade="all, delete-orphan"
    )

    @validates("name")
    def _validate_name(self, key, value):
        return _check_length("Name", value, 50, required=True)

    @validates("email")
    def _validate_email(self, key, value):
        if not value or not value.strip():
            raise ValidationError("Please provide an email")
        return value.strip().lower()

    @validates("role")
    def _validate_role(self, key, value):
        return _check_choice("role", value, ("user", "admin"))

    @validates("first_name", "last_name")
    def _validate_names(self, key, value):
        return _check_length(key, value, 50)

    @property
    def stats(self) -> dict:
        return {
            "codeConversions": self.code_conversions or 0,
            "benchmarksRun": self.benchmarks_run or 0,
            "dataFilesProcessed": self.data_files_processed or 0,
        }


class Subscription(Base):
    __tablename__ = "subscriptions"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), unique=True, nullable=False)
    tier = Column(String, default="free", nullable=False)
    status = Column(String, default="active", nullable=False)
    current_period_end = Column(DateTime, nullable=True)
    provider = Column(String, default="mock", nullable=False)
    customer_id = Column(String)
    provider_subscription_id = Column(String)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="subscription")

    @validates("tier")
    def _validate_tier(self, key, value):
        return _check_choice("tier", value, TIERS)

    @validates("status")
    def _validate_status(self, key, value):
        return _check_choice("status", value, ("active", "past_due", "canceled"))

    @validates("provider")
    def _validate_provider(self, key, value):
        return _check_choice("provider", value, ("stripe", "paypal", "mock"))


class Invoice(Base):
    __tablename__ = "invoices"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    number = Column(String, unique=True, nullable=False)
    status = Column(String, default="paid", nullable=False)
    plan = Column(String, nullable=False)
    date = Column(DateTime, default=_utcnow, nullable=False)
    due_date = Column(DateTime, nullable=True)
    amount = Column(Float, nullable=False)
    currency = Column(String, default="USD", nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    @validates("status")
    def _validate_status(self, key, value):
        return _check_choice("status", value, ("paid", "pending", "overdue", "canceled"))

    @validates("plan")
    def _validate_plan(self, key, value):
        return _check_choice("plan", value, TIERS)


class PaymentMethod(Base):
    __tablename__ = "payment_methods"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String, nullable=False)
    brand = Column(String)
    last4 = Column(String(4))
    email = Column(String)
    expiry_month = Column(Integer)
    expiry_year = Column(Integer)
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="payment_methods")

    @validates("type")
    def _validate_type(self, key, value):
        return _check_choice("type", value, ("card", "paypal"))

    @validates("expiry_month")
    def _validate_month(self, key, value):
        if value is not None and not 1 <= value <= 12:
            raise ValidationError("expiryMonth must be between 1 and 12")
        return value


class BillingAddress(Base):
    __tablename__ = "billing_addresses"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), unique=True, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    address = Column(String(200), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    zip_code = Column(String(20), nullable=False)
    country = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    _LIMITS = {
        "first_name": 50,
        "last_name": 50,
        "address": 200,
        "city": 100,
        "state": 100,
        "zip_code": 20,
        "country": 100,
    }

    @validates(*_LIMITS)
    def _validate_field(self, key, value):
        return _check_length(key, value, self._LIMITS[key], required=True)


class DataFile(Base):
    __tablename__ = "data_files"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)
    filename = Column(String, nullable=False)
    original_name = Column(String, nullable=False)
    file_type = Column(String, nullable=False)
    file_size = Column(Integer, nullable=False, default=0)
    file_path = Column(String, nullable=False)
    status = Column(String, default="uploaded", nullable=False)
    meta = Column(JSON, default=dict)
    description = Column(Text)
    tags = Column(JSON, default=list)
    is_public = Column(Boolean, default=False)
    error_message = Column(Text)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    @validates("file_type")
    def _validate_type(self, key, value):
        return _check_choice("fileType", value, ("json", "csv"))

    @validates("status")
    def _validate_status(self, key, value):
        return _check_choice("status", value, ("uploaded", "processing", "processed", "error"))

    @validates("file_size")
    def _validate_size(self, key, value):
        if value is None or value < 0:
            raise ValidationError("fileSize must be a non-negative number")
        return value


class Workflow(Base):
    __tablename__ = "workflows"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500))
    steps = Column(JSON, default=list)
    status = Column(String, default="draft", nullable=False)
    completed_at = Column(DateTime, nullable=True)
    total_runs = Column(Integer, default=0, nullable=False)
    success_runs = Column(Integer, default=0, nullable=False)
    average_runtime = Column(Float, default=0, nullable=False)
    last_run_at = Column(DateTime, nullable=True)
    tags = Column(JSON, default=list)
    is_public = Column(Boolean, default=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    STEP_TYPES = ("convert", "benchmark", "clean")
    STEP_STATUSES = ("pending", "running", "completed", "failed")

    @validates("name")
    def _validate_name(self, key, value):
        return _check_length("Workflow name", value, 100, required=True)

    @validates("description")
    def _validate_description(self, key, value):
        return _check_length("Description", value, 500)

    @validates("status")
    def _validate_status(self, key, value):
        return _check_choice("status", value, ("draft", "running", "completed", "failed"))

    @validates("steps")
    def _validate_steps(self, key, value):
        steps = value or []
        if not isinstance(steps, list):
            raise ValidationError("steps must be an array")
        for step in steps:
            if not isinstance(step, dict):
                raise ValidationError("each step must be an object")
            if step.get("type") not in self.STEP_TYPES:
                raise ValidationError(f"step type must be one of: {', '.join(self.STEP_TYPES)}")
            if not step.get("id") or not step.get("name"):
                raise ValidationError("each step requires an id and a name")
            _check_choice("step status", step.get("status", "pending"), self.STEP_STATUSES)
        return steps


class CodeConversion(Base):
    __tablename__ = "code_conversions"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    source_library = Column(String, nullable=False)
    target_library = Column(String, nullable=False)
    source_code = Column(Text, nullable=False)
    converted_code = Column(Text, nullable=True)
    status = Column(String, default="processing", nullable=False)
    error_message = Column(Text)
    lines_of_code = Column(Integer, default=0)
    conversion_time = Column(Integer, default=0)
    complexity = Column(String, default="medium")
    tags = Column(JSON, default=list)
    is_public = Column(Boolean, default=False)
    views = Column(Integer, default=0)
    likes = Column(Integer, default=0)
    created_at = Column(DateTime, default=_utcnow, index=True)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    @validates("source_library", "target_library")
    def _validate_library(self, key, value):
        return _check_choice(key, value, LIBRARIES)

    @validates("status")
    def _validate_status(self, key, value):
        return _check_choice("status", value, ("success", "error", "processing"))

    @validates("complexity")
    def _validate_complexity(self, key, value):
        return _check_choice("complexity", value, ("low", "medium", "high"), nullable=True)

    @validates("source_code")
    def _validate_source(self, key, value):
        if not value:
            raise ValidationError("Source code is required")
        if len(value) > 10000:
            raise ValidationError("Source code cannot be more than 10000 characters")
        return value


class QuantumLibrary(Base):
    __tablename__ = "quantum_libraries"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, unique=True, nullable=False)
    display_name = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    version = Column(String, nullable=False)
    features = Column(JSON, default=list)
    documentation_url = Column(String, nullable=False)
    popularity = Column(String, default="Medium")
    color = Column(String, default="bg-blue-500")
    is_active = Column(Boolean, default=True)
    last_updated = Column(DateTime, default=_utcnow)
    conversion_count = Column(Integer, default=0)
    success_rate = Column(Float, default=0)

    @validates("name")
    def _validate_name(self, key, value):
        return _check_choice("name", value, LIBRARIES)

    @validates("popularity")
    def _validate_popularity(self, key, value):
        return _check_choice("popularity", value, ("Low", "Medium", "High"))


class ProviderMetrics(Base):
    __tablename__ = "provider_metrics"
    __table_args__ = (sa.UniqueConstraint("provider", "backend_name", name="uq_provider_backend"),)
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    provider = Column(String, nullable=False, index=True)
    backend_name = Column(String, nullable=False)
    backend_qubits = Column(Integer, nullable=False)
    backend_type = Column(String, default="superconducting")
    queue_time = Column(Float, nullable=False)
    cost_per_shot = Column(Float, nullable=False)
    error_rate = Column(Float, nullable=False)
    availability = Column(Float, nullable=False)
    gate_fidelity = Column(Float)
    readout_fidelity = Column(Float)
    coherence_time = Column(Float)
    status = Column(String, default="online", nullable=False)
    last_updated = Column(DateTime, default=_utcnow)
    data_source = Column(String, default="mock")
    region = Column(String, default="us-east-1")

    @validates("provider")
    def _validate_provider(self, key, value):
        return _check_choice("provider", value, PROVIDERS)

    @validates("status")
    def _validate_status(self, key, value):
        return _check_choice("status", value, ("online", "offline", "maintenance", "error"))

    @validates("availability")
    def _validate_availability(self, key, value):
        if value is None or not 0 <= value <= 100:
            raise ValidationError("availability must be between 0 and 100")
        return value
