"""Application service for AI assistant requests."""

import json
import logging
from collections.abc import Callable
from datetime import date, datetime, timezone
from typing import Any

from gateway_api.constants import CONTEXT_TURNS
from gateway_api.orchestration.base import Dispatcher
from gateway_api.schemas import (
    AssistantChatBody,
    CallerIdentity,
    CanonicalResult,
    ChatMessage,
    ChatRequest,
    MeetingSummaryBody,
    ProjectAnalysisBody,
    ProjectPlanBody,
    ScheduleOptimizationBody,
)

logger = logging.getLogger(__name__)

ASSISTANT_INSTRUCTIONS = """Instructions:
1. Be helpful, concise, and professional
2. Focus on productivity, project management, and task organization
3. Offer specific, actionable advice when possible
4. If asked about features you don't have, suggest workarounds
5. Ask clarifying questions when needed
6. Keep responses under 500 words unless detailed explanation is requested"""

ANALYSIS_SYSTEM_PROMPT = (
    "You are an expert project management AI. Provide detailed, actionable insights."
)
ANALYSIS_TEMPERATURE = 0.3

PLAN_SYSTEM_PROMPT = (
    "You are a project planning expert. Create comprehensive, realistic project plans."
)
PLAN_TEMPERATURE = 0.4
ERROR_DETECTION_SYSTEM_PROMPT = (
    "You are an error detection AI. Be thorough and precise in identifying issues."
)
ERROR_DETECTION_TEMPERATURE = 0.2
SCHEDULE_SYSTEM_PROMPT = (
    "You are a productivity optimization AI. Create efficient, balanced schedules."
)
SCHEDULE_TEMPERATURE = 0.3
MEETING_SUMMARY_SYSTEM_PROMPT = (
    "You are a meeting summarization AI. Extract key information clearly and concisely."
)
MEETING_SUMMARY_TEMPERATURE = 0.2


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def project_metrics(project: ProjectAnalysisBody, today: date) -> dict[str, Any]:
    tasks = project.tasks
    due_date = _parse_date(project.due_date)
    return {
        "totalTasks": len(tasks),
        "completedTasks": sum(1 for t in tasks if t.status == "completed"),
        "inProgressTasks": sum(1 for t in tasks if t.status == "in-progress"),
        "overdueTasks": sum(
            1
            for t in tasks
            if t.status != "completed"
            and (task_due := _parse_date(t.due_date)) is not None
            and task_due < today
        ),
        "highPriorityTasks": sum(1 for t in tasks if t.priority in ("high", "critical")),
        "unassignedTasks": sum(1 for t in tasks if not t.assignee),
        "daysUntilDue": (due_date - today).days if due_date else None,
        "progress": project.progress,
    }


def build_analysis_prompt(project: ProjectAnalysisBody, metrics: dict[str, Any]) -> str:
    task_lines = "\n".join(
        f"- {task.title} ({task.status}, {task.priority})" for task in project.tasks
    )
    return f"""Analyze the following project and provide insights:

Project: {project.title}
Description: {project.description or "Not provided"}
Status: {project.status}
Priority: {project.priority}
Progress: {project.progress}%
Timeline: Start {project.start_date or "Not set"} - End {project.due_date or "Not set"}
Metrics: total {metrics["totalTasks"]}, completed {metrics["completedTasks"]}, \
overdue {metrics["overdueTasks"]}, unassigned {metrics["unassignedTasks"]}
Tasks:
{task_lines or "- none"}

Please provide:
1. Risk assessment and potential issues
2. Timeline analysis and bottlenecks
3. Resource optimization suggestions
4. Success probability estimation
5. Recommendations for improvement"""


def build_plan_prompt(plan: ProjectPlanBody) -> str:
    return f"""Create a detailed project plan based on these requirements:

Requirements: {plan.requirements}

Please provide:
1. Project structure and phases
2. Task breakdown with dependencies
3. Timeline estimation
4. Resource allocation
5. Success metrics
6. Risk mitigation strategies"""


def build_error_detection_prompt(project: ProjectAnalysisBody, metrics: dict[str, Any]) -> str:
    state = project.model_dump(by_alias=True, exclude={"provider_id"}, exclude_none=True)
    state["metrics"] = metrics
    return f"""Analyze this project state and identify potential errors or issues:

Current State: {json.dumps(state, indent=2)}

Look for:
1. Timeline inconsistencies
2. Resource conflicts
3. Task dependencies issues
4. Budget overruns
5. Quality concerns
6. Team capacity problems"""


def build_schedule_prompt(schedule: ScheduleOptimizationBody) -> str:
    current = {"events": schedule.schedule, "preferences": schedule.preferences}
    return f"""Optimize this schedule for maximum productivity:

Current Schedule: {json.dumps(current, indent=2, default=str)}

Consider:
1. Priority of tasks
2. Energy levels throughout the day
3. Meeting efficiency
4. Focus time blocks
5. Breaks and recovery time
6. Personal preferences and constraints"""


def build_meeting_summary_prompt(meeting: MeetingSummaryBody) -> str:
    return f"""Generate a professional meeting summary from this transcript:

Transcript: {meeting.transcript}

Please include:
1. Key decisions made
2. Action items with owners and deadlines
3. Important discussion points
4. Next steps
5. Open questions/concerns"""


class AssistantService:
    def __init__(
        self,
        dispatcher: Dispatcher,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._dispatcher = dispatcher
        self._clock = clock

    def build_system_prompt(self, caller: CallerIdentity) -> str:
        return (
            "You are OmniMind, an AI productivity assistant. You help users manage "
            "projects, tasks, and schedules.\n\n"
            f"User Context:\n- Subscription: {caller.tier}\n\n"
            f"{ASSISTANT_INSTRUCTIONS}\n\n"
            f"Current time: {self._clock().isoformat(timespec='seconds')}"
        )

    def handle_chat(self, caller: CallerIdentity, body: AssistantChatBody) -> CanonicalResult:
        history = [message for message in body.context if message.role != "system"]
        messages = [
            ChatMessage(role="system", content=self.build_system_prompt(caller)),
            *history[-CONTEXT_TURNS:],
            ChatMessage(role="user", content=body.message),
        ]
        logger.info(
            "Assistant chat request received",
            extra={"user_id": caller.user_id, "message_count": len(messages)},
        )
        request = ChatRequest(
            messages=messages, temperature=body.temperature, max_tokens=body.max_tokens
        )
        return self._dispatcher.dispatch("chat", request, body.provider_id)

    def analyze_project(
        self, caller: CallerIdentity, project_id: str, project: ProjectAnalysisBody
    ) -> tuple[CanonicalResult, dict[str, Any]]:
        metrics = project_metrics(project, self._clock().date())
        logger.info(
            "Project analysis requested",
            extra={"user_id": caller.user_id, "project_id": project_id, **metrics},
        )
        result = self._run_prompt(
            ANALYSIS_SYSTEM_PROMPT,
            build_analysis_prompt(project, metrics),
            ANALYSIS_TEMPERATURE,
            project.provider_id,
        )
        return result, metrics

    def detect_project_errors(
        self, caller: CallerIdentity, project_id: str, project: ProjectAnalysisBody
    ) -> tuple[CanonicalResult, dict[str, Any]]:
        metrics = project_metrics(project, self._clock().date())
        logger.info(
            "Project error detection requested",
            extra={"user_id": caller.user_id, "project_id": project_id},
        )
        result = self._run_prompt(
            ERROR_DETECTION_SYSTEM_PROMPT,
            build_error_detection_prompt(project, metrics),
            ERROR_DETECTION_TEMPERATURE,
            project.provider_id,
        )
        return result, metrics

    def generate_project_plan(
        self, caller: CallerIdentity, plan: ProjectPlanBody
    ) -> CanonicalResult:
        logger.info("Project plan requested", extra={"user_id": caller.user_id})
        return self._run_prompt(
            PLAN_SYSTEM_PROMPT, build_plan_prompt(plan), PLAN_TEMPERATURE, plan.provider_id
        )

    def optimize_schedule(
        self, caller: CallerIdentity, schedule: ScheduleOptimizationBody
    ) -> CanonicalResult:
        logger.info(
            "Schedule optimization requested",
            extra={"user_id": caller.user_id, "event_count": len(schedule.schedule)},
        )
        return self._run_prompt(
            SCHEDULE_SYSTEM_PROMPT,
            build_schedule_prompt(schedule),
            SCHEDULE_TEMPERATURE,
            schedule.provider_id,
        )

    def summarize_meeting(
        self, caller: CallerIdentity, meeting: MeetingSummaryBody
    ) -> CanonicalResult:
        logger.info(
            "Meeting summary requested",
            extra={"user_id": caller.user_id, "transcript_length": len(meeting.transcript)},
        )
        return self._run_prompt(
            MEETING_SUMMARY_SYSTEM_PROMPT,
            build_meeting_summary_prompt(meeting),
            MEETING_SUMMARY_TEMPERATURE,
            meeting.provider_id,
        )

    def _run_prompt(
        self, system_prompt: str, prompt: str, temperature: float, provider_id: str | None
    ) -> CanonicalResult:
        request = ChatRequest(
            messages=[
                ChatMessage(role="system", content=system_prompt),
                ChatMessage(role="user", content=prompt),
            ],
            temperature=temperature,
        )
        return self._dispatcher.dispatch("chat", request, provider_id)
