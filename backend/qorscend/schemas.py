import math
from datetime import datetime
from typing import Optional, Any, Dict, List, Generic, TypeVar
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from uuid import UUID

T = TypeVar("T")


class APIModel(BaseModel):
    """Base for request and response bodies; camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Envelope(APIModel, Generic[T]):
    success: bool = True
    data: T


class Pagination(APIModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def of(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


# Accounts


class LoginRequest(APIModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RegisterRequest(APIModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class PasswordChange(APIModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class ProfileUpdate(APIModel):
    name: Optional[str] = None
    avatar: Optional[str] = None
    preferences: Optional[Dict[str, Any]] = None


class UserOut(APIModel):
    id: UUID
    name: str
    email: str
    role: str
    avatar: Optional[str] = ""
    stats: Dict[str, int]
    preferences: Optional[Dict[str, Any]] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None


class UserStatsOut(APIModel):
    stats: Dict[str, int]
    last_login: Optional[datetime] = None
    member_since: Optional[datetime] = None


class SettingsUpdate(APIModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    organization: Optional[str] = None
    tool_preferences: Optional[Dict[str, Any]] = None
    appearance: Optional[Dict[str, Any]] = None
    notifications: Optional[Dict[str, Any]] = None
    data_privacy: Optional[Dict[str, Any]] = None


class SettingsOut(APIModel):
    first_name: str
    last_name: str
    organization: str
    tool_preferences: Dict[str, Any]
    appearance: Dict[str, Any]
    notifications: Dict[str, Any]
    data_privacy: Dict[str, Any]


# Billing


class PlanRequest(APIModel):
    plan_id: Optional[str] = None


class SubscriptionOut(APIModel):
    tier: str
    status: str
    current_period_end: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None
    amount: float
    currency: str


class UsageLine(APIModel):
    used: float
    limit: Optional[int] = None
    unlimited: bool = False


class BillingOverviewOut(APIModel):
    subscription: SubscriptionOut
    usage: Dict[str, UsageLine]


class InvoiceOut(APIModel):
    id: UUID
    number: str
    date: datetime
    due_date: Optional[datetime] = None
    amount: float
    currency: str
    status: str
    plan: str


class InvoiceHistoryOut(APIModel):
    invoices: List[InvoiceOut]


class PaymentMethodCreate(APIModel):
    type: Optional[str] = None
    brand: Optional[str] = None
    last4: Optional[str] = None
    email: Optional[str] = None
    expiry_month: Optional[int] = None
    expiry_year: Optional[int] = None


class PaymentMethodOut(APIModel):
    id: UUID
    type: str
    brand: Optional[str] = None
    last4: Optional[str] = None
    email: Optional[str] = None
    expiry_month: Optional[int] = None
    expiry_year: Optional[int] = None
    is_default: bool
    created_at: Optional[datetime] = None


class BillingAddressIn(APIModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class BillingAddressOut(APIModel):
    id: UUID
    first_name: str
    last_name: str
    address: str
    city: str
    state: str
    zip_code: str
    country: str
    updated_at: Optional[datetime] = None


# Data files


class DataFileRegister(APIModel):
    filename: Optional[str] = None
    original_name: Optional[str] = None
    content_type: Optional[str] = None
    size: Optional[int] = None
    description: Optional[str] = None
    tags: Optional[Any] = None


class DataFileOut(APIModel):
    id: UUID
    filename: str
    original_name: str
    file_type: str
    file_size: int
    status: str
    uploaded_at: Optional[datetime] = None
    record_count: int = 0
    metadata: Dict[str, Any] = Field(default_factory=dict)
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record) -> "DataFileOut":
        meta = record.meta or {}
        return cls(
            id=record.id,
            filename=record.filename,
            original_name=record.original_name,
            file_type=record.file_type,
            file_size=record.file_size,
            status=record.status,
            uploaded_at=record.created_at,
            record_count=meta.get("recordCount", 0),
            metadata=meta,
            description=record.description,
            tags=record.tags or [],
        )


class ExportRequest(APIModel):
    format: Optional[str] = "json"
    options: List[str] = Field(default_factory=list)


class ChartExportRequest(APIModel):
    chart_type: Optional[str] = None
    x_axis: Optional[str] = None
    y_axis: Optional[str] = None
    format: str = "json"


class ProcessRequest(APIModel):
    processing_options: List[Any] = Field(default_factory=list)


# Workflows


class WorkflowStep(APIModel):
    id: str
    type: str
    name: str
    description: Optional[str] = None
    status: str = "pending"
    config: Dict[str, Any] = Field(default_factory=dict)
    result: Optional[Any] = None
    error: Optional[str] = None


class WorkflowCreate(APIModel):
    name: Optional[str] = None
    description: Optional[str] = None
    steps: List[WorkflowStep] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    is_public: bool = False


class WorkflowUpdate(APIModel):
    name: Optional[str] = None
    description: Optional[str] = None
    steps: Optional[List[WorkflowStep]] = None
    status: Optional[str] = None
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None
    completed_at: Optional[datetime] = None


class WorkflowRunRequest(APIModel):
    id: Optional[UUID] = None
    workflow_id: Optional[UUID] = None


class WorkflowOut(APIModel):
    id: UUID
    name: str
    description: Optional[str] = None
    steps: List[WorkflowStep] = Field(default_factory=list)
    status: str
    tags: List[str] = Field(default_factory=list)
    is_public: bool = False
    total_runs: int = 0
    success_runs: int = 0
    average_runtime: float = 0
    last_run_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WorkflowStatsOut(APIModel):
    active_workflows: int
    completed: int
    success_rate: str
    avg_runtime: str


# Conversions


class ConversionRequest(APIModel):
    source_library: Optional[str] = None
    target_library: Optional[str] = None
    source_code: Optional[Any] = None
    tags: Optional[Any] = None


class ConversionOut(APIModel):
    id: str
    source_library: str
    target_library: str
    source_code: str
    converted_code: Optional[str] = None
    status: str
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record) -> "ConversionOut":
        return cls(
            id=str(record.id),
            source_library=record.source_library,
            target_library=record.target_library,
            source_code=record.source_code,
            converted_code=record.converted_code,
            status=record.status,
            error_message=record.error_message,
            metadata={
                "linesOfCode": record.lines_of_code or 0,
                "conversionTime": record.conversion_time or 0,
                "complexity": record.complexity or "medium",
            },
            tags=record.tags or [],
            created_at=record.created_at,
        )


class ConversionResultOut(APIModel):
    conversion: ConversionOut
    conversion_time: int
    complexity: str


# Catalog reads


class LibraryOut(APIModel):
    id: UUID
    name: str
    display_name: str
    description: str
    version: str
    features: List[str] = Field(default_factory=list)
    docs: str = Field(validation_alias="documentation_url")
    popularity: str
    color: str
