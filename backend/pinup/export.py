"""Markdown export of a version's comments, ready to paste into an editor or issue"""

from datetime import datetime, timezone
from typing import Optional

from pinup.models import Comment


def _mentions(haystack: str, *needles: str) -> bool:
    return any(n in haystack for n in needles)


def suggested_action(comment: Comment) -> str:
    """Guess a follow-up from what was clicked and what was said"""
    selector = comment.element_selector.lower()
    text = comment.text.lower()
    target = comment.element_selector

    if _mentions(selector, "button", "btn", "cta"):
        if _mentions(text, "small", "tap", "click"):
            return (
                f"Increase tap target for {target} on {comment.device_type}. "
                "Minimum 44x44px recommended."
            )
        return f"Review button styling/behavior for {target}."

    if _mentions(selector, "h1", "h2", "h3", "title", "heading"):
        if _mentions(text, "generic", "specific", "change"):
            return f"Update heading text in {target} to be more specific/compelling."
        return f"Review heading content in {target}."

    if _mentions(selector, "input", "form", "field"):
        return f"Review form field behavior/validation for {target}."

    if "card" in selector:
        if _mentions(text, "hover", "effect", "animation"):
            return f"Add hover state/interaction to {target}."
        return f"Review card component styling at {target}."

    if _mentions(selector, "nav", "menu", "header"):
        return f"Review navigation element at {target}."

    if _mentions(selector, "img", "image", "photo"):
        return f"Review image element at {target}."

    return f"Review element at {target} based on feedback."


def render_markdown(
    project_name: str,
    version_label: str,
    comments: list[Comment],
    exported_at: Optional[datetime] = None,
) -> str:
    exported_at = exported_at or datetime.now(timezone.utc)
    lines = [
        "## PinUp Feedback Export",
        f"**Project:** {project_name}",
        f"**Version:** {version_label}",
        f"**Exported:** {exported_at.strftime('%Y-%m-%d %H:%M')}",
        f"**Comments:** {len(comments)} items",
        "",
        "---",
        "",
    ]

    if not comments:
        lines += ["*No comments for this version.*", ""]

    for index, comment in enumerate(comments, start=1):
        lines += [
            f"### 📌 Comment #{index}",
            f"**Element:** `{comment.element_selector}`",
        ]
        if comment.element_text:
            lines.append(f'**Element Text:** "{comment.element_text}"')
        lines += [
            f"**Viewport:** {comment.device_type.capitalize()} ({comment.viewport_width}px)",
            f"**Author:** {comment.author_name}",
            "",
            "**Feedback:**",
            f'"{comment.text}"',
            "",
            "**Suggested action:**",
            suggested_action(comment),
            "",
            "---",
            "",
        ]

    lines.append("*Exported from PinUp*")
    return "\n".join(lines)


def export_filename(project_id: str, version_id: str, day: Optional[datetime] = None) -> str:
    day = day or datetime.now(timezone.utc)
    return f"pinup-{project_id}-{version_id}-{day.strftime('%Y-%m-%d')}.md"
