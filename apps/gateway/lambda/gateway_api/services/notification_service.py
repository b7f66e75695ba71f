"""Application service for push notification fan-out."""

import logging
from typing import Any

from gateway_api.orchestration.base import Dispatcher
from gateway_api.provider_registry import ProviderRegistry
from gateway_api.providers.push_common import detect_push_platform
from gateway_api.schemas import (
    NotificationBody,
    ProjectNotificationBody,
    PushSendRequest,
    PushTarget,
    TaskNotificationBody,
)

logger = logging.getLogger(__name__)

TASK_ACTION_LABELS = {
    "created": "created",
    "updated": "updated",
    "assigned": "assigned to you",
    "completed": "completed",
    "due_soon": "due soon",
}


def task_notification(body: TaskNotificationBody) -> NotificationBody:
    task = body.task
    label = TASK_ACTION_LABELS.get(body.action, "updated")
    data = {
        "type": "task",
        "taskId": task.id,
        "action": body.action,
        "taskUrl": f"/tasks/{task.id}",
    }
    if task.project_id:
        data["projectId"] = task.project_id
    suffix = f" in {task.project_title}" if task.project_title else ""
    return NotificationBody(
        title=f"Task {label}",
        body=f'"{task.title}"{suffix}',
        data=data,
        targets=body.targets,
    )


def project_notification(body: ProjectNotificationBody) -> NotificationBody:
    project = body.project
    return NotificationBody(
        title=f"Project {body.action}",
        body=f'"{project.title}" has been {body.action}',
        data={
            "type": "project",
            "projectId": project.id,
            "action": body.action,
            "projectUrl": f"/projects/{project.id}",
        },
        targets=body.targets,
    )


class NotificationService:
    def __init__(self, registry: ProviderRegistry, dispatcher: Dispatcher) -> None:
        self._registry = registry
        self._dispatcher = dispatcher

    def preferred_provider_for(self, target: PushTarget) -> str | None:
        """Explicit provider, else the first push provider tagged for the target's platform."""
        if target.provider_id:
            return target.provider_id
        platform = detect_push_platform(target.token)
        for descriptor in self._registry.list_providers("push"):
            if platform in descriptor.tags:
                return descriptor.id
        return None

    def send(self, body: NotificationBody) -> dict[str, Any]:
        results: list[dict[str, Any]] = []
        failed_subscriptions: list[str] = []

        for target in body.targets:
            request = PushSendRequest(
                title=body.title,
                body=body.body,
                target_token=target.token,
                target_keys=target.keys,
                data=body.data,
            )
            result = self._dispatcher.dispatch(
                "push", request, self.preferred_provider_for(target)
            )
            payload = result.payload or {}
            delivered = result.success and bool(payload.get("delivered"))
            should_remove = bool(payload.get("shouldRemove"))
            if should_remove and target.id:
                failed_subscriptions.append(target.id)

            results.append(
                {
                    "subscriptionId": target.id,
                    "success": delivered,
                    "providerId": result.provider_id,
                    "platform": payload.get("platform"),
                    "messageId": payload.get("messageId"),
                    "shouldRemove": should_remove,
                    "errorKind": result.error_kind,
                }
            )

        sent = sum(1 for row in results if row["success"])
        logger.info(
            "Push notifications dispatched",
            extra={"sent": sent, "failed": len(results) - sent, "title": body.title},
        )
        return {
            "sent": sent,
            "failed": len(results) - sent,
            "results": results,
            "failedSubscriptions": failed_subscriptions,
        }
