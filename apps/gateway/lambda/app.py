"""Provider gateway backend using FastAPI + Mangum for AWS Lambda."""

import logging
from collections.abc import Callable
from functools import lru_cache
from typing import Any, get_args

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse
from mangum import Mangum

from gateway_api.constants import Capability, ErrorKind, SubscriptionTier
from gateway_api.errors import (
    AuthError,
    BadRequestError,
    GatewayError,
    ProviderNotFoundError,
)
from gateway_api.infra.runtime import (
    build_dispatcher,
    build_registry,
    ensure_langsmith_configured,
    flush_langsmith_traces,
    get_settings,
)
from gateway_api.orchestration.base import Dispatcher, select_provider
from gateway_api.provider_registry import ProviderDescriptor, ProviderRegistry
from gateway_api.schemas import (
    ApiError,
    ApiResponse,
    AssistantChatBody,
    CallerIdentity,
    CanonicalResult,
    CostEstimateBody,
    MeetingSummaryBody,
    NotificationBody,
    ProjectAnalysisBody,
    ProjectNotificationBody,
    ProjectPlanBody,
    ScheduleOptimizationBody,
    SubscriptionBody,
    TaskNotificationBody,
)
from gateway_api.services.assistant_service import AssistantService
from gateway_api.services.billing_service import BillingService
from gateway_api.services.notification_service import (
    NotificationService,
    project_notification,
    task_notification,
)
from gateway_api.services.quota import InMemoryCounterStore, QuotaService, QuotaStatus
from gateway_api.usage import estimate_cost

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

app = FastAPI()
router = APIRouter(prefix="/api")

STATUS_BY_ERROR_KIND: dict[str, int] = {
    "unknown_provider": 400,
    "invalid_request": 400,
    "rate_limited": 429,
    "auth": 401,
    "configuration": 500,
    "vendor": 502,
    "unknown": 500,
}
GENERIC_ERROR_MESSAGES: dict[str, str] = {
    "auth": "Provider authentication failed",
    "configuration": "Provider is not configured",
    "vendor": "Provider request failed",
    "unknown": "Internal server error",
}
SUBSCRIPTION_TIERS = frozenset(get_args(SubscriptionTier))


@lru_cache(maxsize=1)
def get_registry() -> ProviderRegistry:
    return build_registry(get_settings())


@lru_cache(maxsize=1)
def get_dispatcher() -> Dispatcher:
    return build_dispatcher(get_settings(), get_registry())


@lru_cache(maxsize=1)
def get_quota_service() -> QuotaService:
    return QuotaService(InMemoryCounterStore())


@lru_cache(maxsize=1)
def get_assistant_service() -> AssistantService:
    return AssistantService(get_dispatcher())


@lru_cache(maxsize=1)
def get_billing_service() -> BillingService:
    return BillingService(get_dispatcher())


@lru_cache(maxsize=1)
def get_notification_service() -> NotificationService:
    return NotificationService(get_registry(), get_dispatcher())


def _public_message(kind: str, message: str | None) -> str:
    """Vendor error text is only exposed in development."""
    if get_settings().is_development or kind not in GENERIC_ERROR_MESSAGES:
        return message or GENERIC_ERROR_MESSAGES.get(kind, "Request failed")
    return GENERIC_ERROR_MESSAGES[kind]


def _ok(data: Any) -> JSONResponse:
    body = ApiResponse(success=True, data=data)
    return JSONResponse(content=body.model_dump(mode="json", by_alias=True, exclude_none=True))


def _error(kind: ErrorKind, message: str, retry_after_ms: int | None = None) -> JSONResponse:
    body = ApiResponse(
        success=False,
        error=ApiError(kind=kind, message=message, retry_after_ms=retry_after_ms),
    )
    headers = {}
    if retry_after_ms is not None:
        headers["Retry-After"] = str(max(1, retry_after_ms // 1000))
    return JSONResponse(
        status_code=STATUS_BY_ERROR_KIND.get(kind, 500),
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
        headers=headers,
    )


def _result_data(result: CanonicalResult, **extra: Any) -> dict[str, Any]:
    data = result.model_dump(
        mode="json",
        by_alias=True,
        exclude_none=True,
        include={"payload", "usage", "provider_id", "duration_ms"},
    )
    data.update(extra)
    return data


def _respond(
    result: CanonicalResult, build_data: Callable[[CanonicalResult], Any]
) -> JSONResponse:
    if not result.success:
        kind = result.error_kind or "unknown"
        return _error(kind, _public_message(kind, result.message), result.retry_after_ms)
    return _ok(build_data(result))


@app.exception_handler(GatewayError)
async def handle_gateway_error(_: Request, exc: GatewayError) -> JSONResponse:
    return _error(exc.error_kind, str(exc), getattr(exc, "retry_after_ms", None))


def get_caller(
    user_id: str | None = Header(default=None, alias="X-User-Id"),
    tier: str | None = Header(default=None, alias="X-User-Tier"),
) -> CallerIdentity:
    if not user_id:
        raise AuthError("Authentication required", status_code=401)
    tier = (tier or "free").lower()
    if tier not in SUBSCRIPTION_TIERS:
        raise BadRequestError(f"Unsupported subscription tier: {tier}")
    return CallerIdentity(user_id=user_id, tier=tier)


def _enforce_quota(
    caller: CallerIdentity, capability: Capability, preferred_provider_id: str | None
) -> QuotaStatus | None:
    """Daily tier quota for chat, then the selected provider's request window."""
    quota_service = get_quota_service()
    status = quota_service.consume_daily(caller) if capability == "chat" else None
    try:
        descriptor = select_provider(get_registry(), capability, preferred_provider_id)
    except ProviderNotFoundError:
        # The dispatcher reports unknown_provider for this request.
        return status
    quota_service.consume_provider_window(caller, descriptor)
    return status


def _quota_data(status: QuotaStatus | None) -> dict[str, int]:
    if status is None:
        return {}
    return {"used": status.used, "limit": status.limit, "remaining": status.limit - status.used}


@router.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/providers")
def list_providers(capability: Capability | None = Query(default=None)) -> JSONResponse:
    registry = get_registry()
    providers = [
        descriptor.to_metadata().model_dump(mode="json", by_alias=True, exclude_none=True)
        for descriptor in registry.list_providers(capability)
    ]
    return _ok({"providers": providers, "status": registry.status()})


def _assistant_response(
    caller: CallerIdentity,
    provider_id: str | None,
    run: Callable[[], tuple[CanonicalResult, dict[str, Any]]],
    content_key: str,
) -> JSONResponse:
    """Quota check, one chat dispatch, and the lifetime count only after a success."""
    ensure_langsmith_configured()
    try:
        status = _enforce_quota(caller, "chat", provider_id)
        result, extra = run()
        if result.success:
            get_quota_service().record_completion(caller)
        return _respond(
            result,
            lambda r: _result_data(
                r,
                **{content_key: (r.payload or {}).get("content", "")},
                **extra,
                quota=_quota_data(status),
            ),
        )
    finally:
        flush_langsmith_traces()


@router.post("/ai/chat")
def assistant_chat(
    body: AssistantChatBody, caller: CallerIdentity = Depends(get_caller)
) -> JSONResponse:
    return _assistant_response(
        caller,
        body.provider_id,
        lambda: (get_assistant_service().handle_chat(caller, body), {}),
        "message",
    )


@router.post("/ai/analyze/{project_id}")
def analyze_project(
    project_id: str, body: ProjectAnalysisBody, caller: CallerIdentity = Depends(get_caller)
) -> JSONResponse:
    def run() -> tuple[CanonicalResult, dict[str, Any]]:
        result, metrics = get_assistant_service().analyze_project(caller, project_id, body)
        return result, {"projectId": project_id, "metrics": metrics}

    return _assistant_response(caller, body.provider_id, run, "analysis")


@router.post("/ai/detect-errors/{project_id}")
def detect_project_errors(
    project_id: str, body: ProjectAnalysisBody, caller: CallerIdentity = Depends(get_caller)
) -> JSONResponse:
    def run() -> tuple[CanonicalResult, dict[str, Any]]:
        result, metrics = get_assistant_service().detect_project_errors(
            caller, project_id, body
        )
        return result, {"projectId": project_id, "metrics": metrics}

    return _assistant_response(caller, body.provider_id, run, "issues")


@router.post("/ai/generate-project")
def generate_project_plan(
    body: ProjectPlanBody, caller: CallerIdentity = Depends(get_caller)
) -> JSONResponse:
    return _assistant_response(
        caller,
        body.provider_id,
        lambda: (get_assistant_service().generate_project_plan(caller, body), {}),
        "plan",
    )


@router.post("/ai/optimize-schedule")
def optimize_schedule(
    body: ScheduleOptimizationBody, caller: CallerIdentity = Depends(get_caller)
) -> JSONResponse:
    return _assistant_response(
        caller,
        body.provider_id,
        lambda: (get_assistant_service().optimize_schedule(caller, body), {}),
        "recommendations",
    )


@router.post("/ai/meeting-summary")
def summarize_meeting(
    body: MeetingSummaryBody, caller: CallerIdentity = Depends(get_caller)
) -> JSONResponse:
    return _assistant_response(
        caller,
        body.provider_id,
        lambda: (get_assistant_service().summarize_meeting(caller, body), {}),
        "summary",
    )


@router.post("/ai/estimate")
def estimate(body: CostEstimateBody, caller: CallerIdentity = Depends(get_caller)) -> JSONResponse:
    descriptor = select_provider(get_registry(), "chat", body.provider_id)
    logger.info(
        "Cost estimate requested",
        extra={"user_id": caller.user_id, "provider_id": descriptor.id},
    )
    return _ok(estimate_cost(body.prompt, descriptor, body.expected_output_length))


@router.post("/user/subscription")
def create_subscription(
    body: SubscriptionBody, caller: CallerIdentity = Depends(get_caller)
) -> JSONResponse:
    _enforce_quota(caller, "payment", body.provider_id)
    result = get_billing_service().subscribe(caller, body)
    return _respond(result, lambda r: _result_data(r, plan=body.plan, seats=body.seats))


def _enforce_push_quota(caller: CallerIdentity, body: NotificationBody) -> None:
    """Consume one request from each push provider's window used by this batch."""
    registry = get_registry()
    notifications = get_notification_service()
    descriptors: dict[str, ProviderDescriptor] = {}
    for target in body.targets:
        try:
            descriptor = select_provider(
                registry, "push", notifications.preferred_provider_for(target)
            )
        except ProviderNotFoundError:
            # Reported per target as unknown_provider in the delivery summary.
            continue
        descriptors.setdefault(descriptor.id, descriptor)
    for descriptor in descriptors.values():
        get_quota_service().consume_provider_window(caller, descriptor)


def _send_push(caller: CallerIdentity, body: NotificationBody) -> JSONResponse:
    logger.info(
        "Notification send requested",
        extra={"user_id": caller.user_id, "target_count": len(body.targets)},
    )
    _enforce_push_quota(caller, body)
    return _ok(get_notification_service().send(body))


@router.post("/notifications")
def send_notifications(
    body: NotificationBody, caller: CallerIdentity = Depends(get_caller)
) -> JSONResponse:
    return _send_push(caller, body)


@router.post("/notifications/task")
def send_task_notification(
    body: TaskNotificationBody, caller: CallerIdentity = Depends(get_caller)
) -> JSONResponse:
    return _send_push(caller, task_notification(body))


@router.post("/notifications/project")
def send_project_notification(
    body: ProjectNotificationBody, caller: CallerIdentity = Depends(get_caller)
) -> JSONResponse:
    return _send_push(caller, project_notification(body))


app.include_router(router)


handler = Mangum(app)
