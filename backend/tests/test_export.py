from datetime import datetime, timezone

from conftest import make_comment
from pinup.export import export_filename, render_markdown, suggested_action

EXPORTED = datetime(2026, 3, 4, 9, 30, tzinfo=timezone.utc)


def test_suggested_action_for_small_button():
    comment = make_comment(
        "c1", "button.cta", text="This is too small on my phone", device_type="mobile"
    )

    action = suggested_action(comment)

    assert action.startswith("Increase tap target for button.cta on mobile")


def test_suggested_action_fallbacks():
    assert "heading text" in suggested_action(
        make_comment("c1", "section > h1", text="Too generic")
    )
    assert "card component" in suggested_action(make_comment("c2", "div.Card"))
    assert suggested_action(make_comment("c3", "#footer > p")) == (
        "Review element at #footer > p based on feedback."
    )


def test_render_markdown_lists_comments_in_order():
    comments = [
        make_comment("c1", "button.cta", text="Make it bigger", element_text="Start"),
        make_comment("c2", "#hero > h1", text="Love it"),
    ]

    markdown = render_markdown("Landing", "v2", comments, exported_at=EXPORTED)

    assert "**Project:** Landing" in markdown
    assert "**Exported:** 2026-03-04 09:30" in markdown
    assert "**Comments:** 2 items" in markdown
    assert markdown.index("Comment #1") < markdown.index("Comment #2")
    assert '**Element Text:** "Start"' in markdown
    assert "**Viewport:** Desktop (1440px)" in markdown
    assert markdown.rstrip().endswith("*Exported from PinUp*")


def test_render_markdown_without_comments():
    markdown = render_markdown("Landing", "v2", [], exported_at=EXPORTED)

    assert "**Comments:** 0 items" in markdown
    assert "*No comments for this version.*" in markdown


def test_export_filename():
    assert export_filename("proj", "v1", EXPORTED) == "pinup-proj-v1-2026-03-04.md"
