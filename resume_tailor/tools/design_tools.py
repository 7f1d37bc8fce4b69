"""Design tools - theme updates and the preview render."""

from __future__ import annotations

import logging
from typing import Optional

from ..domain.design import LAYOUTS, build_theme, theme_changes
from ..domain.document import resume_to_text
from ..domain.language import detect_language
from ..domain.layout import HtmlLayoutRenderer, LayoutOptions, LayoutRenderer, check_rendering, html_language
from ..errors import ValidationError
from .args import RenderArgs, ThemeArgs
from .base import BaseTool, RunContext, ToolResult

logger = logging.getLogger(__name__)


class ThemeTool(BaseTool):
    """Apply font, color, layout, spacing and density settings to the run's theme."""

    name = "design.theme"
    description = "Update the resume theme. Unknown fonts, colors or layouts are rejected."
    args_model = ThemeArgs

    async def execute(self, context: RunContext, args: ThemeArgs) -> ToolResult:
        before = context.theme
        after = build_theme(before, **args.model_dump())
        changes = theme_changes(before, after)
        context.theme = after
        return ToolResult(
            success=True,
            output=f"font={after.font_family}; color={after.color_hex}; layout={after.layout}",
            data={"theme": after.to_dict()},
            changes=changes,
        )


class RenderTool(BaseTool):
    """Render the preview and enforce the dir/lang markup contract."""

    name = "layout.render"
    description = "Render an HTML preview with explicit dir and lang attributes."
    args_model = RenderArgs

    def __init__(self, renderer: Optional[LayoutRenderer] = None):
        self.renderer = renderer or HtmlLayoutRenderer()

    async def execute(self, context: RunContext, args: RenderArgs) -> ToolResult:
        layout = (args.layout or context.theme.layout).lower()
        if layout not in LAYOUTS:
            raise ValidationError(f"Unsupported layout: {layout}", {"layout": layout, "allowed": list(LAYOUTS)})

        text = resume_to_text(context.resume)
        detected = detect_language(text)
        direction = args.direction or detected.direction
        lang = html_language(text, detected)

        rendering = self.renderer.render(
            context.resume,
            LayoutOptions(layout=layout, direction=direction, theme=context.theme),
        )
        check_rendering(rendering, direction, lang)
        context.rendering = rendering
        logger.debug("Rendered %s preview (%s, %s)", layout, direction, lang)
        return ToolResult(
            success=True,
            output=f"Rendered {layout} preview",
            data={"layout": layout, "direction": direction, "lang": lang, "bytes": len(rendering.html)},
        )
