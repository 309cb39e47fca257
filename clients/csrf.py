"""Anti-forgery token scraping for the device service login page.

The login page embeds its token in an inline script, e.g.
``window.Laravel = {"csrfToken":"..."}``. There is no structured contract for
this markup, so the scrape is textual and will need updating if the page
changes shape.
"""

from __future__ import annotations

import re

from clients.errors import CsrfTokenNotFoundError

CSRF_FIELD = "csrfToken"

_TOKEN_PATTERN = re.compile(
    r"""["']?%s["']?\s*[:=]\s*["']([^"']+)["']""" % re.escape(CSRF_FIELD)
)


def extract_token(body: str) -> str:
    match = _TOKEN_PATTERN.search(body)
    if match is None:
        raise CsrfTokenNotFoundError()
    return match.group(1)
