"""Tool vocabulary: one typed action per tool, discriminated on ``tool``.

Raw ``{tool, args, rationale}`` dicts from the rule parser or the
suggestion service are decoded here, at the execution boundary. Unknown
tools and malformed arguments never reach a tool implementation.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from ..models import ActionRecord
from ..tools.args import (
    CommitArgs,
    RenderArgs,
    ScoreArgs,
    ScrapeArgs,
    SkillsAddArgs,
    SkillsOptimizeArgs,
    StrengthenArgs,
    ThemeArgs,
)

PHASE_SCRAPE = 0
PHASE_CONTENT = 1
PHASE_STYLE = 2
PHASE_RENDER = 3
PHASE_SCORE = 4
PHASE_COMMIT = 5


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: ClassVar[int]
    rationale: str = ""

    def to_record(self, source: str = "rule", status: str = "ok", error: Optional[str] = None) -> ActionRecord:
        return ActionRecord(
            tool=self.tool,
            args=self.args.model_dump(exclude_none=True),
            rationale=self.rationale,
            source=source,
            status=status,
            error=error,
        )

    def signature(self) -> tuple:
        """Identity used to drop duplicate actions."""
        return (self.tool, json.dumps(self.args.model_dump(exclude_none=True), sort_keys=True))


class JobScrapeAction(_Action):
    phase: ClassVar[int] = PHASE_SCRAPE
    tool: Literal["job.scrape"] = "job.scrape"
    args: ScrapeArgs


class SkillsAddAction(_Action):
    phase: ClassVar[int] = PHASE_CONTENT
    tool: Literal["skills.add"] = "skills.add"
    args: SkillsAddArgs


class SkillsOptimizeAction(_Action):
    phase: ClassVar[int] = PHASE_CONTENT
    tool: Literal["skills.optimize"] = "skills.optimize"
    args: SkillsOptimizeArgs = Field(default_factory=SkillsOptimizeArgs)


class StrengthenAction(_Action):
    phase: ClassVar[int] = PHASE_CONTENT
    tool: Literal["content.strengthen"] = "content.strengthen"
    args: StrengthenArgs = Field(default_factory=StrengthenArgs)


class ThemeAction(_Action):
    phase: ClassVar[int] = PHASE_STYLE
    tool: Literal["design.theme"] = "design.theme"
    args: ThemeArgs = Field(default_factory=ThemeArgs)


class RenderAction(_Action):
    phase: ClassVar[int] = PHASE_RENDER
    tool: Literal["layout.render"] = "layout.render"
    args: RenderArgs = Field(default_factory=RenderArgs)


class ScoreAction(_Action):
    phase: ClassVar[int] = PHASE_SCORE
    tool: Literal["ats.score"] = "ats.score"
    args: ScoreArgs = Field(default_factory=ScoreArgs)


class CommitAction(_Action):
    phase: ClassVar[int] = PHASE_COMMIT
    tool: Literal["history.commit"] = "history.commit"
    args: CommitArgs = Field(default_factory=CommitArgs)


Action = Annotated[
    Union[
        JobScrapeAction,
        SkillsAddAction,
        SkillsOptimizeAction,
        StrengthenAction,
        ThemeAction,
        RenderAction,
        ScoreAction,
        CommitAction,
    ],
    Field(discriminator="tool"),
]

_ACTION_ADAPTER: TypeAdapter = TypeAdapter(Action)

ACTION_TYPES = (
    JobScrapeAction,
    SkillsAddAction,
    SkillsOptimizeAction,
    StrengthenAction,
    ThemeAction,
    RenderAction,
    ScoreAction,
    CommitAction,
)

TOOL_NAMES = tuple(cls.model_fields["tool"].default for cls in ACTION_TYPES)

#: Tools every plan runs exactly once; suggestions for them are ignored.
MANDATORY_TOOLS = ("layout.render", "ats.score", "history.commit")


def decode_action(raw: Any) -> Action:
    """Decode ``{tool, args, rationale}`` into a typed action.

    Raises:
        ValidationError: for unknown tools or arguments that do not fit
            the tool's argument record.
    """
    if not isinstance(raw, dict):
        raise ValidationError("Action must be an object", {"type": type(raw).__name__})
    tool = raw.get("tool")
    if tool not in TOOL_NAMES:
        raise ValidationError(f"Unknown tool: {tool}", {"tool": tool, "allowed": list(TOOL_NAMES)})

    payload = {"tool": tool, "args": raw.get("args") or {}}
    if isinstance(raw.get("rationale"), str):
        payload["rationale"] = raw["rationale"]
    try:
        return _ACTION_ADAPTER.validate_python(payload)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid arguments for {tool}",
            {"tool": tool, "errors": e.errors(include_url=False, include_context=False)},
        ) from e


def describe_vocabulary() -> List[Dict[str, Any]]:
    """Tool names with their argument JSON schema, for the suggestion prompt."""
    described = []
    for cls in ACTION_TYPES:
        args_type = cls.model_fields["args"].annotation
        described.append(
            {
                "tool": cls.model_fields["tool"].default,
                "phase": cls.phase,
                "args": args_type.model_json_schema(),
            }
        )
    return described
