"""
Normalizes metadata and logo URIs (ipfs://, ar://, gateway URLs, relative paths)
into fetchable HTTPS URLs. Pure functions, no network I/O.
"""
import re
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from wallet_metadata import config

CID_PATTERN = r'[A-Za-z0-9]{46,}'

# Checked in this order: explicit scheme, /ipfs/ path, subdomain gateway
SCHEME_CID_RE = re.compile(r'^(?!https?://)[A-Za-z][A-Za-z0-9+.-]*://(?:ipfs/)?(' + CID_PATTERN + r')([^?#]*)')
PATH_CID_RE = re.compile(r'/ipfs/(' + CID_PATTERN + r')([^?#]*)')
SUBDOMAIN_CID_RE = re.compile(r'^https?://(' + CID_PATTERN + r')\.ipfs\.[^/?#]+([^?#]*)', re.IGNORECASE)


def _match_content_id(uri: str) -> Optional[Tuple[str, str]]:
    for pattern in (SCHEME_CID_RE, PATH_CID_RE, SUBDOMAIN_CID_RE):
        match = pattern.search(uri)
        if match:
            suffix = match.group(2)
            return match.group(1), ("" if suffix == "/" else suffix)
    return None


def extract_content_id(uri: Optional[str]) -> Optional[str]:
    """
    Extract an IPFS content id from ipfs://CID, .../ipfs/CID or https://CID.ipfs.host forms
    """
    if not uri:
        return None
    match = _match_content_id(uri.strip())
    return match[0] if match else None


def content_id_suffix(uri: str) -> str:
    """
    Path segments that follow the content id (e.g. "/metadata.json"), without query string
    """
    match = _match_content_id(uri.strip())
    return match[1] if match else ""


def gateway_url(gateway: str, cid: str, suffix: str = "") -> str:
    return f"{gateway}{cid}{suffix}"


def _resolve_non_ipfs(uri: str) -> str:
    if uri.startswith("ar://"):
        return config.get_arweave_gateway() + uri[len("ar://"):]
    if uri.startswith("//"):
        return "https:" + uri
    if uri.startswith("/"):
        return config.get_registry_origin() + uri
    return uri


def resolve_uri(raw: Optional[str]) -> Optional[str]:
    """
    Turn any supported URI form into a fetchable URL, None for empty input
    """
    if raw is None or not raw.strip():
        return None
    uri = raw.strip()

    match = _match_content_id(uri)
    if match:
        cid, suffix = match
        return gateway_url(config.get_ipfs_gateways()[0], cid, suffix)

    return _resolve_non_ipfs(uri)


def candidate_urls(raw: Optional[str]) -> List[str]:
    """
    Ordered fetch candidates: every public gateway for IPFS content, otherwise the single resolved URL
    """
    if raw is None or not raw.strip():
        return []
    uri = raw.strip()

    match = _match_content_id(uri)
    if match:
        cid, suffix = match
        return [gateway_url(gateway, cid, suffix) for gateway in config.get_ipfs_gateways()]

    resolved = _resolve_non_ipfs(uri)
    parsed = urlparse(resolved)
    if parsed.scheme not in ("http", "https"):
        return []
    return [resolved]
