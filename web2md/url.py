"""URL validation and normalisation.

This is the only guard between user input and an outbound request, so it
whitelists ``http``/``https`` and nothing else.
"""

from __future__ import annotations

import re
from urllib.parse import quote, urlsplit, urlunsplit

from web2md.errors import ValidationError

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_ALLOWED_SCHEMES = ("http", "https")
_BAD_HOST_CHARS = re.compile(r'[\s<>"{}|\\^`]')
_DEFAULT_PORTS = {"http": 80, "https": 443}
# Reserved and sub-delim characters stay literal; "%" keeps existing escapes.
_PATH_SAFE = "/%:@!$&'()*+,;="
_QUERY_SAFE = _PATH_SAFE + "?"


def _canonical_host(hostname: str) -> str:
    if ":" in hostname:
        return f"[{hostname}]"
    if hostname.isascii():
        return hostname
    try:
        return hostname.encode("idna").decode("ascii")
    except UnicodeError as exc:
        raise ValidationError("Invalid URL format") from exc


def _canonical_netloc(parts, scheme: str) -> str:
    netloc = _canonical_host(parts.hostname)
    if parts.port is not None and parts.port != _DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{parts.port}"
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"
    return netloc


def validate_url(url: str) -> str:
    """Validate *url* and return its normalised form.

    A missing scheme is treated as ``https://``.  The returned string is the
    canonical serialisation: lowercase scheme and host, IDNA-encoded
    hostnames, no default port, percent-encoded path and query, and ``/``
    for an empty path.  Callers must not expect it to equal the input byte
    for byte.

    Raises:
        ValidationError: If the URL is empty, unparseable, or uses a scheme
            other than HTTP/HTTPS.
    """
    candidate = (url or "").strip()
    if not candidate:
        raise ValidationError("URL cannot be empty")

    if not _SCHEME_RE.match(candidate):
        candidate = f"https://{candidate}"

    try:
        parts = urlsplit(candidate)
        # Accessing .port validates it (raises ValueError when malformed).
        parts.port
    except ValueError as exc:
        raise ValidationError("Invalid URL format") from exc

    scheme = parts.scheme.lower()
    if scheme not in _ALLOWED_SCHEMES:
        raise ValidationError("Only HTTP and HTTPS protocols are allowed")

    if not parts.hostname or _BAD_HOST_CHARS.search(parts.hostname):
        raise ValidationError("Invalid URL format")

    return urlunsplit(
        (
            scheme,
            _canonical_netloc(parts, scheme),
            quote(parts.path, safe=_PATH_SAFE) or "/",
            quote(parts.query, safe=_QUERY_SAFE),
            quote(parts.fragment, safe=_QUERY_SAFE),
        )
    )
