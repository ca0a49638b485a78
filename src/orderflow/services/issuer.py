"""Issuer-side helpers for minting auto-login links.

The issuing application (for instance the Shopify admin app) signs a
credential for its current user and sends the browser to
``<BASE_URL>/auto-login?token=...``. These helpers produce the same links
for operators and tests.
"""

from __future__ import annotations

from urllib.parse import quote

from orderflow.core.settings import settings
from orderflow.services.credentials import AutoLoginCodec, AutoLoginSubject, get_codec

AUTO_LOGIN_PATH = "/auto-login"


def build_auto_login_url(base_url: str, token: str) -> str:
    """Return the verifier URL that redeems `token`."""
    return f"{base_url.rstrip('/')}{AUTO_LOGIN_PATH}?token={quote(token, safe='')}"


def generate_auto_login_url(
    subject: AutoLoginSubject,
    issuer_tag: str | None = None,
    *,
    base_url: str | None = None,
    codec: AutoLoginCodec | None = None,
) -> str:
    """Mint a credential for `subject` and wrap it in an auto-login URL."""
    codec = codec or get_codec()
    token = codec.encode(subject, issuer_tag or settings.auto_login_issuer_tag)
    return build_auto_login_url(base_url or settings.base_url, token)
