"""
Syntactic domain validation for site domains.

Purely lexical: no DNS lookup, no network. A domain is a bare host
(optionally with a port), never a URL.
"""

import re
from typing import Optional

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_LOCALHOST_RE = re.compile(r"localhost(?::[0-9]{1,5})?")
# Labels: lowercase alphanumerics/hyphens, no leading/trailing hyphen, <= 63 chars.
# Final label: >= 2 letters. Optional :port, ASCII digits only.
_HOSTNAME_RE = re.compile(
    r"(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,}(?::[0-9]{1,5})?"
)


def normalize_domain(domain: str) -> str:
    """Trim and lowercase a user-supplied domain."""
    return domain.strip().lower()


def is_valid_domain(domain: Optional[str]) -> bool:
    if not domain:
        return False
    if _SCHEME_RE.match(domain) or "/" in domain:
        return False
    if not ("a" <= domain[0] <= "z"):
        return False
    if _LOCALHOST_RE.fullmatch(domain):
        return True
    return _HOSTNAME_RE.fullmatch(domain) is not None
