"""Pydantic schemas for canonical requests/results and the HTTP envelope."""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import (
    DEFAULT_CURRENCY,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    Capability,
    ErrorKind,
    SubscriptionTier,
)


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: Literal["chat"] = "chat"
    messages: list[ChatMessage]
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0, le=2)
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, alias="maxTokens", ge=1, le=8192)

    @model_validator(mode="after")
    def validate_messages(self) -> "ChatRequest":
        if not any(message.role != "system" for message in self.messages):
            raise ValueError("messages must contain at least one user or assistant message")
        return self


class PaymentChargeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: Literal["payment"] = "payment"
    amount: float = Field(gt=0)
    currency: str = Field(default=DEFAULT_CURRENCY, pattern=r"^[A-Za-z]{3}$")
    customer_ref: str = Field(alias="customerRef", min_length=1)
    description: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, currency: str) -> str:
        return currency.lower()

    def amount_minor_units(self) -> int:
        return round(self.amount * 100)


class PushSendRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: Literal["push"] = "push"
    title: str = Field(min_length=1)
    body: str
    target_token: str = Field(alias="targetToken", min_length=1)
    # p256dh/auth pair for browser push subscriptions.
    target_keys: dict[str, str] | None = Field(default=None, alias="targetKeys")
    data: dict[str, str] = Field(default_factory=dict)


CanonicalRequest = Annotated[
    ChatRequest | PaymentChargeRequest | PushSendRequest,
    Field(discriminator="kind"),
]


class Usage(BaseModel):
    model_config = ConfigDict(frozen=True)

    input_units: int = Field(serialization_alias="inputUnits")
    output_units: int = Field(serialization_alias="outputUnits")
    cost: float


class CanonicalResult(BaseModel):
    success: bool
    payload: dict[str, Any] | None = None
    usage: Usage | None = None
    provider_id: str | None = Field(default=None, serialization_alias="providerId")
    duration_ms: int | None = Field(default=None, serialization_alias="durationMs")
    error_kind: ErrorKind | None = Field(default=None, serialization_alias="errorKind")
    message: str | None = None
    retry_after_ms: int | None = Field(default=None, serialization_alias="retryAfterMs")


class RequestLimitWindowMetadata(BaseModel):
    max_requests: int = Field(serialization_alias="maxRequests")
    window_seconds: int = Field(serialization_alias="windowSeconds")


class ProviderMetadata(BaseModel):
    id: str
    vendor_name: str = Field(serialization_alias="vendorName")
    display_name: str = Field(serialization_alias="displayName")
    capabilities: list[Capability]
    cost_per_unit: float = Field(serialization_alias="costPerUnit")
    request_limit_window: RequestLimitWindowMetadata = Field(
        serialization_alias="requestLimitWindow"
    )
    model: str | None = None
    max_tokens: int | None = Field(default=None, serialization_alias="maxTokens")
    context_window: int | None = Field(default=None, serialization_alias="contextWindow")
    tags: list[str] = Field(default_factory=list)


# --- HTTP bodies -----------------------------------------------------------


class CallerIdentity(BaseModel):
    user_id: str
    tier: SubscriptionTier = "free"


class AssistantChatBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    context: list[ChatMessage] = Field(default_factory=list)
    provider_id: str | None = Field(default=None, alias="providerId")
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0, le=2)
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, alias="maxTokens", ge=1, le=8192)

    @field_validator("message")
    @classmethod
    def validate_message(cls, message: str) -> str:
        if not message.strip():
            raise ValueError("message is required")
        return message


class TaskSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    status: str = "todo"
    priority: str = "medium"
    due_date: str | None = Field(default=None, alias="dueDate")
    assignee: str | None = None


class ProjectAnalysisBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1)
    description: str = ""
    status: str = "active"
    priority: str = "medium"
    progress: int = Field(default=0, ge=0, le=100)
    start_date: str | None = Field(default=None, alias="startDate")
    due_date: str | None = Field(default=None, alias="dueDate")
    tasks: list[TaskSummary] = Field(default_factory=list)
    provider_id: str | None = Field(default=None, alias="providerId")


class ProjectPlanBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    requirements: str = Field(min_length=1)
    provider_id: str | None = Field(default=None, alias="providerId")


class ScheduleOptimizationBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schedule: list[dict[str, Any]] = Field(min_length=1)
    preferences: dict[str, Any] = Field(default_factory=dict)
    provider_id: str | None = Field(default=None, alias="providerId")


class MeetingSummaryBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transcript: str = Field(min_length=1)
    provider_id: str | None = Field(default=None, alias="providerId")


class CostEstimateBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    provider_id: str | None = Field(default=None, alias="providerId")
    expected_output_length: int = Field(default=500, alias="expectedOutputLength", ge=0)


class SubscriptionBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan: Literal["pro", "business"]
    seats: int = Field(default=1, ge=1, le=1000)
    currency: str = Field(default=DEFAULT_CURRENCY, pattern=r"^[A-Za-z]{3}$")
    customer_ref: str = Field(alias="customerRef", min_length=1)
    provider_id: str | None = Field(default=None, alias="providerId")


class PushTarget(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    token: str = Field(min_length=1)
    keys: dict[str, str] | None = None
    provider_id: str | None = Field(default=None, alias="providerId")


class NotificationBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1)
    body: str
    data: dict[str, str] = Field(default_factory=dict)
    targets: list[PushTarget] = Field(min_length=1, max_length=500)


class TaskRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    project_id: str | None = Field(default=None, alias="projectId")
    project_title: str | None = Field(default=None, alias="projectTitle")


class ProjectRef(BaseModel):
    id: str
    title: str


class TaskNotificationBody(BaseModel):
    task: TaskRef
    action: Literal["created", "updated", "assigned", "completed", "due_soon"] = "updated"
    targets: list[PushTarget] = Field(min_length=1, max_length=500)


class ProjectNotificationBody(BaseModel):
    project: ProjectRef
    action: str = Field(min_length=1)
    targets: list[PushTarget] = Field(min_length=1, max_length=500)


class ApiError(BaseModel):
    kind: ErrorKind
    message: str
    retry_after_ms: int | None = Field(default=None, serialization_alias="retryAfterMs")


class ApiResponse(BaseModel):
    success: bool
    data: Any = None
    error: ApiError | None = None
