"""Inline-styled HTML fragments for outbound email."""

from __future__ import annotations

import html

PRIMARY = "#1e3a5f"
DARK_GRAY = "#333333"
BODY_FONT_STACK = "-apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif"

_HEADING_SIZES = {1: "24px", 2: "20px", 3: "18px"}
_HEADING_MARGINS = {1: "0 0 20px 0", 2: "24px 0 16px 0", 3: "20px 0 12px 0"}
_HIGHLIGHT_COLORS = {
    "info": ("#e8f4fd", PRIMARY),
    "warning": ("#fef3c7", "#f59e0b"),
    "success": ("#d1fae5", "#10b981"),
}


def multiline(text: str) -> str:
    """Escape plain text and keep its line breaks."""
    return html.escape(text).replace("\n", "<br />")


def heading(text: str, level: int = 2) -> str:
    return (
        f'<h{level} style="margin: {_HEADING_MARGINS[level]}; padding: 0; font-family: {BODY_FONT_STACK}; '
        f"font-size: {_HEADING_SIZES[level]}; font-weight: 600; color: {PRIMARY}; line-height: 1.3;\">"
        f"{html.escape(text)}</h{level}>"
    )


def paragraph(content_html: str) -> str:
    return (
        f'<p style="margin: 0 0 16px 0; padding: 0; font-family: {BODY_FONT_STACK}; '
        f'font-size: 16px; line-height: 1.6; color: {DARK_GRAY};">{content_html}</p>'
    )


def highlight_box(content_html: str, variant: str = "info") -> str:
    background, border = _HIGHLIGHT_COLORS[variant]
    return (
        '<table role="presentation" width="100%" cellspacing="0" cellpadding="0" border="0" '
        'style="margin: 20px 0;"><tr>'
        f'<td style="padding: 16px; background-color: {background}; border-left: 4px solid {border}; '
        'border-radius: 0 4px 4px 0;">'
        f'<div style="font-family: {BODY_FONT_STACK}; font-size: 14px; line-height: 1.5; color: {DARK_GRAY};">'
        f"{content_html}</div></td></tr></table>"
    )


def message_html(from_name: str, body: str, signature: str) -> str:
    """HTML body for a manager-to-manager message."""
    return "\n".join(
        [
            heading(f"Message from {from_name}", 2),
            paragraph(multiline(body)),
            highlight_box(multiline(signature), "info"),
        ]
    )


def message_text(body: str, signature: str) -> str:
    return f"{body}\n\n{signature}"
