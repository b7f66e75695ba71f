"""LangGraph-based dispatch strategy: select, invoke, and account as graph nodes."""

from typing import Any, NotRequired, TypedDict, cast

from langgraph.graph import END, START, StateGraph

from gateway_api.constants import Capability
from gateway_api.errors import GatewayError
from gateway_api.provider_registry import ProviderDescriptor, ProviderRegistry
from gateway_api.providers.base import AdapterRequest, ProviderResponse
from gateway_api.schemas import CanonicalResult

from .base import (
    Dispatcher,
    ensure_request_matches,
    failure_result,
    select_provider,
    success_result,
    timed_invoke,
)


class DispatchGraphState(TypedDict):
    capability: Capability
    request: AdapterRequest
    preferred_provider_id: str | None
    descriptor: NotRequired[ProviderDescriptor]
    response: NotRequired[ProviderResponse]
    duration_ms: NotRequired[int]
    result: NotRequired[CanonicalResult]


def _route_after_step(state: DispatchGraphState) -> str:
    return "done" if "result" in state else "next"


class LangGraphDispatcher(Dispatcher):
    def __init__(self, registry: ProviderRegistry) -> None:
        self._registry = registry
        graph = StateGraph(DispatchGraphState)
        graph.add_node("select_provider", self._select_provider)
        graph.add_node("invoke_provider", self._invoke_provider)
        graph.add_node("account_usage", self._account_usage)
        graph.add_edge(START, "select_provider")
        graph.add_conditional_edges(
            "select_provider", _route_after_step, {"done": END, "next": "invoke_provider"}
        )
        graph.add_conditional_edges(
            "invoke_provider", _route_after_step, {"done": END, "next": "account_usage"}
        )
        graph.add_edge("account_usage", END)
        self._graph = graph.compile()

    def _select_provider(self, state: DispatchGraphState) -> dict[str, Any]:
        try:
            ensure_request_matches(state["capability"], state["request"])
            descriptor = select_provider(
                self._registry, state["capability"], state["preferred_provider_id"]
            )
        except GatewayError as exc:
            return {"result": failure_result(exc)}
        return {"descriptor": descriptor}

    def _invoke_provider(self, state: DispatchGraphState) -> dict[str, Any]:
        descriptor = state["descriptor"]
        adapter = self._registry.get_adapter(descriptor.id)
        response, error, duration_ms = timed_invoke(adapter, state["request"])
        if error is not None:
            return {"result": failure_result(error, descriptor.id, duration_ms)}
        return {"response": response, "duration_ms": duration_ms}

    def _account_usage(self, state: DispatchGraphState) -> dict[str, CanonicalResult]:
        return {
            "result": success_result(
                state["response"], state["descriptor"], state["duration_ms"]
            )
        }

    def dispatch(
        self,
        capability: Capability,
        request: AdapterRequest,
        preferred_provider_id: str | None = None,
    ) -> CanonicalResult:
        initial_state: DispatchGraphState = {
            "capability": capability,
            "request": request,
            "preferred_provider_id": preferred_provider_id,
        }
        final_state = cast("DispatchGraphState", self._graph.invoke(initial_state))
        result = final_state.get("result")
        if result is None:
            return failure_result(RuntimeError("LangGraph dispatch did not produce a result"))
        return result
