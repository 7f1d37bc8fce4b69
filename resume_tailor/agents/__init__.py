"""Planning and execution of tailoring commands."""

from .actions import MANDATORY_TOOLS, TOOL_NAMES, Action, decode_action, describe_vocabulary
from .auth import Authorizer, RequireUserAuthorizer
from .intents import INTENTS, detect_intent
from .planner import Plan, PlannedStep, Planner, merge_suggestions, parse_command
from .runtime import AgentRuntime
from .suggestions import HttpSuggestionService, NoopSuggestionService, SuggestionRequest, SuggestionService

__all__ = [
    "Action",
    "MANDATORY_TOOLS",
    "TOOL_NAMES",
    "AgentRuntime",
    "Authorizer",
    "HttpSuggestionService",
    "INTENTS",
    "NoopSuggestionService",
    "Plan",
    "PlannedStep",
    "Planner",
    "RequireUserAuthorizer",
    "SuggestionRequest",
    "SuggestionService",
    "decode_action",
    "describe_vocabulary",
    "detect_intent",
    "merge_suggestions",
    "parse_command",
]
