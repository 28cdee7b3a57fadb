"""Rendering helpers for payment notification emails.

Each message is three files under ``templates/``: ``<name>_subject.txt.j2``,
``<name>_body.txt.j2`` and ``<name>_body.html.j2``. Placeholders are
``{{ field }}``; missing or ``None`` fields render empty, and values are
HTML-escaped in the HTML part only.
"""
from __future__ import annotations

import html
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

from .providers import OutboundEmail

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

_FIELD = re.compile(r"{{\s*(\w+)\s*}}")

# (file suffix, escape values)
_PARTS = (
    ("subject.txt", False),
    ("body.txt", False),
    ("body.html", True),
)


@lru_cache(maxsize=32)
def _source(filename: str) -> str:
    return (TEMPLATE_DIR / filename).read_text(encoding="utf-8")


def _fill(source: str, context: Mapping[str, Any], *, escape: bool) -> str:
    def _value(match: re.Match[str]) -> str:
        raw = context.get(match.group(1))
        text = "" if raw is None else str(raw)
        return html.escape(text) if escape else text

    return _FIELD.sub(_value, source).strip()


def render_subject_body(base_template: str, context: Mapping[str, Any]) -> Tuple[str, str, str]:
    """Return ``(subject, text_body, html_body)`` for ``base_template``."""

    subject, text_body, html_body = (
        _fill(_source(f"{base_template}_{suffix}.j2"), context, escape=escape) for suffix, escape in _PARTS
    )
    return subject, text_body, html_body


def render_email(
    base_template: str, context: Mapping[str, Any], *, to: str, reply_to: Optional[str] = None
) -> OutboundEmail:
    subject, text_body, html_body = render_subject_body(base_template, context)
    return OutboundEmail(to=to, subject=subject, text_body=text_body, html_body=html_body, reply_to=reply_to)


__all__ = ["TEMPLATE_DIR", "render_email", "render_subject_body"]
