"""OAuth scopes to request, per issuer.

Two things are driven by scopes: the user's email (``openid profile``) and
refresh tokens (``offline_access``). Most providers accept the same scopes;
some reject them for their own reasons and get a dedicated entry here.
"""

import logging

import tldextract

from ..core.config import OAuthConfig

logger = logging.getLogger(__name__)

DEFAULT_SCOPES = "openid profile offline_access"

SCOPES_BY_DOMAIN = {
    "google.com": "openid profile https://www.googleapis.com/auth/userinfo.email",
    "okta.com": DEFAULT_SCOPES,
}

# Bundled public suffix list snapshot; no download at runtime
_extract = tldextract.TLDExtract(suffix_list_urls=())


def registrable_domain(url: str) -> str:
    """Registrable domain of a URL, e.g. ``google.com`` for ``https://accounts.google.com``."""
    parts = _extract(url)
    if not parts.domain or not parts.suffix:
        return ""
    return f"{parts.domain}.{parts.suffix}"


def get_oauth_scopes(config: OAuthConfig) -> str:
    domain = registrable_domain(config.issuer)
    logger.debug(f"Computing scopes for issuer: '{config.issuer}', domain: '{domain}'")
    return SCOPES_BY_DOMAIN.get(domain, DEFAULT_SCOPES)
