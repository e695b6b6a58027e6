"""Per-recipient HTML preparation for workflow and campaign emails.

Both senders share the same three passes: ``{{name}}`` substitution,
click-tracking link rewriting and an open-tracking pixel.  Tracking
parameters differ only in the owner key (``w`` for a workflow, ``c``
for a campaign), so callers pass them in as a mapping.
"""

import re
from typing import Mapping, Optional
from urllib.parse import quote, urlencode

from app.core.constants import NAME_PLACEHOLDER_FALLBACK

_NAME_PLACEHOLDER = re.compile(r"\{\{\s*name\s*\}\}", re.IGNORECASE)
_HREF = re.compile(r'href="([^"]*)"', re.IGNORECASE)
_BODY_CLOSE = re.compile(r"</body>", re.IGNORECASE)

_PIXEL_STYLE = (
    "height:1px !important;width:1px !important;border-width:0 !important;"
    "margin:0 !important;padding:0 !important;"
)


def personalize(text: str, name: Optional[str]) -> str:
    """Replace every ``{{name}}`` (any case) with *name* or the fallback."""
    replacement = name or NAME_PLACEHOLDER_FALLBACK
    return _NAME_PLACEHOLDER.sub(lambda _: replacement, text)


def _tracking_query(params: Mapping[str, object]) -> str:
    return urlencode({k: str(v) for k, v in params.items() if v is not None})


def rewrite_links(html: str, base_url: str, params: Mapping[str, object]) -> str:
    """Route absolute ``http(s)`` links through the click tracker.

    ``mailto:``, in-page anchors and relative links are left alone.
    """
    click_base = f"{base_url.rstrip('/')}/api/v1/public/track/click?{_tracking_query(params)}"

    def _wrap(match: "re.Match[str]") -> str:
        url = match.group(1)
        if not url.lower().startswith("http"):
            return match.group(0)
        return f'href="{click_base}&u={quote(url, safe="")}"'

    return _HREF.sub(_wrap, html)


def add_open_pixel(html: str, base_url: str, params: Mapping[str, object]) -> str:
    """Insert a 1x1 tracking image before ``</body>`` or append it."""
    pixel_url = f"{base_url.rstrip('/')}/api/v1/public/track/open?{_tracking_query(params)}"
    pixel = (
        f'<img src="{pixel_url}" width="1" height="1" border="0" alt="" '
        f'style="{_PIXEL_STYLE}" />'
    )
    if _BODY_CLOSE.search(html):
        return _BODY_CLOSE.sub(lambda m: pixel + m.group(0), html, count=1)
    return html + pixel


def prepare_tracked_email(
    content: str,
    name: Optional[str],
    base_url: str,
    params: Mapping[str, object],
) -> str:
    """Run all three passes in order."""
    html = personalize(content, name)
    html = rewrite_links(html, base_url, params)
    return add_open_pixel(html, base_url, params)
