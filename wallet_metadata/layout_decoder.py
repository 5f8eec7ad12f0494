"""
Decoders for the two on-chain token metadata layouts:

- Token-2022 inline metadata extension, read from jsonParsed mint account data
- Metaplex metadata account (derived address), read from raw account bytes

Both decoders return None for anything malformed instead of raising, so one bad
account can never fail a whole resolution pass.
"""
import base64
import binascii
import logging
import re
from typing import Any, Dict, Optional

import base58

from wallet_metadata.models import TokenMetadataFields

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

TOKEN_METADATA_EXTENSION = "tokenMetadata"

# key (1) + update authority (32) + mint (32)
RECORD_PREFIX_LENGTH = 65
LENGTH_PREFIX_SIZE = 4
MIN_RECORD_LENGTH = RECORD_PREFIX_LENGTH + LENGTH_PREFIX_SIZE

NAME_MAX_BYTES = 200
SYMBOL_MAX_BYTES = 50
URI_MAX_BYTES = 500

# Printable ASCII plus everything above Latin-1 controls
PRINTABLE_NAME_RE = re.compile(r'[\x20-\x7E\u00A0-\U0010FFFF]{1,60}')


def clean_text(value: Any) -> str:
    """
    Strip NUL padding and surrounding whitespace from a metadata string field
    """
    if not isinstance(value, str):
        return ""
    return value.replace("\x00", "").strip()


def normalize_account_data(data: Any) -> Optional[bytes]:
    """
    Normalize account data to raw bytes.

    Accepts raw bytes, a base64 string, a [payload, encoding] pair as returned by
    the RPC, or a whole account object carrying one of those under "data".
    """
    if data is None:
        return None
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, dict):
        return normalize_account_data(data.get("data"))

    try:
        if isinstance(data, str):
            return base64.b64decode(data, validate=True)
        if isinstance(data, (list, tuple)) and len(data) == 2:
            payload, encoding = data
            if not isinstance(payload, str):
                return None
            if encoding == "base64":
                return base64.b64decode(payload, validate=True)
            if encoding == "base58":
                return base58.b58decode(payload)
            logger.debug(f"Unsupported account data encoding: {encoding}")
    except (binascii.Error, ValueError) as e:
        logger.debug(f"Could not decode account data: {str(e)}")

    return None


def _parsed_info(account_info: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    data = account_info.get("data", account_info)
    if not isinstance(data, dict):
        return None
    parsed = data.get("parsed")
    if not isinstance(parsed, dict):
        return None
    info = parsed.get("info")
    return info if isinstance(info, dict) else None


def decode_inline_extension(account_info: Optional[Dict[str, Any]]) -> Optional[TokenMetadataFields]:
    """
    Read name/symbol/uri from a Token-2022 mint's tokenMetadata extension
    """
    if not isinstance(account_info, dict):
        return None
    info = _parsed_info(account_info)
    if info is None:
        return None

    extensions = info.get("extensions")
    if not isinstance(extensions, list):
        return None

    for extension in extensions:
        if not isinstance(extension, dict) or extension.get("extension") != TOKEN_METADATA_EXTENSION:
            continue
        state = extension.get("state")
        if not isinstance(state, dict):
            return None

        name = clean_text(state.get("name"))
        symbol = clean_text(state.get("symbol"))
        if not name and not symbol:
            return None
        return TokenMetadataFields(name=name, symbol=symbol, uri=clean_text(state.get("uri")))

    return None


def decode_derived_account_record(raw: Any) -> Optional[TokenMetadataFields]:
    """
    Decode a Metaplex metadata account.

    Layout: key(1) | update_authority(32) | mint(32) | name | symbol | uri,
    each string a u32 little-endian length followed by UTF-8 bytes.
    """
    data = normalize_account_data(raw)
    if data is None or len(data) < MIN_RECORD_LENGTH:
        return None

    offset = RECORD_PREFIX_LENGTH
    fields = []
    for cap in (NAME_MAX_BYTES, SYMBOL_MAX_BYTES, URI_MAX_BYTES):
        if offset + LENGTH_PREFIX_SIZE > len(data):
            return None
        length = int.from_bytes(data[offset:offset + LENGTH_PREFIX_SIZE], byteorder='little')
        offset += LENGTH_PREFIX_SIZE

        if length > cap or offset + length > len(data):
            return None

        try:
            text = data[offset:offset + length].decode('utf-8')
        except UnicodeDecodeError:
            return None
        fields.append(clean_text(text))
        offset += length

    name, symbol, uri = fields
    if not PRINTABLE_NAME_RE.fullmatch(name):
        return None
    if not name and not symbol:
        return None

    return TokenMetadataFields(name=name, symbol=symbol, uri=uri)
