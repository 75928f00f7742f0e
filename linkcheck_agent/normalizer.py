"""Canonicalize raw user input into an absolute http(s) URL."""
from __future__ import annotations

import ipaddress
import re
from urllib.parse import urlsplit

_LABEL_RE = re.compile(r"^[a-z0-9_](?:[a-z0-9_-]{0,61}[a-z0-9_])?$")
_SCHEMES = ("http://", "https://")


def _valid_host(host: str) -> bool:
    if host.startswith("[") and host.endswith("]"):
        try:
            ipaddress.IPv6Address(host[1:-1])
        except ValueError:
            return False
        return True

    if not host.isascii():
        try:
            host = host.encode("idna").decode("ascii")
        except UnicodeError:
            return False

    labels = host[:-1].split(".") if host.endswith(".") else host.split(".")
    if not labels or len(host) > 253:
        return False
    return all(_LABEL_RE.match(label) for label in labels)


def normalize_url(raw: str | None) -> str | None:
    """Return the normalized URL, or ``None`` when ``raw`` cannot be parsed.

    Input is trimmed and lowercased; ``https://`` is prefixed unless an http(s)
    scheme is already present. No network access happens here.
    """
    if not raw:
        return None
    value = raw.strip().lower()
    if not value:
        return None
    if not value.startswith(_SCHEMES):
        value = "https://" + value

    try:
        parts = urlsplit(value)
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        return None

    netloc = parts.netloc.rsplit("@", 1)[-1]
    host = netloc
    if host.startswith("["):
        host = host[: host.find("]") + 1]
    elif ":" in host:
        host = host.split(":", 1)[0]

    if not host or not _valid_host(host):
        return None
    return value


def hostname_of(url: str) -> str | None:
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return None
    return host or None
