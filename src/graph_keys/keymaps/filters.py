"""Decides when key events belong to a text field rather than the keymap."""

from __future__ import annotations

from typing import Any

TEXT_ENTRY_TAGS = frozenset({"input", "textarea", "select"})


def _attr(target: Any, *names: str) -> Any:
    for name in names:
        value = getattr(target, name, None)
        if value is not None:
            return value
    return None


def should_ignore(event: Any) -> bool:
    """True when the event targets a text-entry control."""

    target = getattr(event, "target", None)
    if target is None:
        return False
    tag_name = _attr(target, "tag_name", "tagName") or ""
    if str(tag_name).lower() in TEXT_ENTRY_TAGS:
        return True
    return bool(_attr(target, "is_content_editable", "isContentEditable"))


__all__ = ["TEXT_ENTRY_TAGS", "should_ignore"]
