"""Minimal HTML rendering for the browser-facing pages."""
from __future__ import annotations

from html import escape
from typing import Iterable

from newsletter_service.shared.http.flash import FlashMessage


def render_flash(messages: Iterable[FlashMessage]) -> str:
    return "".join(f"<p><i>{escape(m.text)}</i></p>" for m in messages)


def render_page(title: str, body: str, messages: Iterable[FlashMessage] = ()) -> str:
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '    <meta http-equiv="content-type" content="text/html; charset=utf-8">\n'
        f"    <title>{escape(title)}</title>\n"
        "</head>\n"
        "<body>\n"
        f"{render_flash(messages)}\n"
        f"{body}\n"
        "</body>\n"
        "</html>\n"
    )
