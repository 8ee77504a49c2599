"""Translate queue messages into outbound HTTP requests.

A GET request is built by decoding the message as a JSON object and
substituting its string fields into the URL pattern, where each placeholder
has the form <Key> (the field name with its first character uppercased).
A POST request always goes to the literal pattern with the raw message as body.
"""

import json
import logging
import re
from collections.abc import Mapping

from msg_bridge.models import HttpMethod, RequestDescriptor

logger = logging.getLogger(__name__)


class DecodeError(ValueError):
    """The message is not valid JSON."""


def _reject_constant(name: str) -> float:
    # NaN, Infinity and -Infinity are not JSON
    raise DecodeError(f"invalid constant {name}")


def placeholder_for(key: str) -> str:
    """Return the placeholder token for a message key: only byte 0 is uppercased."""
    if not key:
        return "<>"
    first = key[0]
    if first.isascii():
        first = first.upper()
    return f"<{first}{key[1:]}>"


def resolve(pattern: str, values: Mapping[str, str]) -> str:
    """Replace every placeholder in pattern that has a matching key in values.

    Substitution is a single pass over the pattern, so substituted values are
    never scanned for placeholders again and key order does not matter.
    Placeholders without a matching key are left as they are. When two keys
    map to the same placeholder ("key" and "Key"), the key spelled exactly
    like the placeholder wins.
    """
    tokens: dict[str, str] = {}
    for key, value in values.items():
        token = placeholder_for(key)
        if token not in tokens or token == f"<{key}>":
            tokens[token] = value
    if not tokens:
        return pattern

    # longest first, so a token that is a prefix of another never shadows it
    alternatives = sorted(tokens, key=len, reverse=True)
    matcher = re.compile("|".join(re.escape(token) for token in alternatives))
    return matcher.sub(lambda match: tokens[match.group(0)], pattern)


def decode(raw: bytes | str) -> dict[str, str]:
    """Break a JSON message down into a flat map of its string-valued fields.

    Args:
        raw: The message payload.
    Returns:
        Mapping of top-level field name to string value. Fields holding
        numbers, booleans, null, arrays or objects are dropped. A payload
        that is valid JSON but not an object yields an empty map.

    Raises:
        DecodeError: If the payload is not valid UTF-8 JSON.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as err:
            raise DecodeError(f"message is not UTF-8: {err}") from err

    try:
        parsed = json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as err:
        raise DecodeError(f"malformed message: {err}") from err
    if not isinstance(parsed, dict):
        return {}

    fields: dict[str, str] = {}
    for key, value in parsed.items():
        match value:
            case str():
                fields[key] = value
            case bool() | int() | float() | None | list() | dict():
                continue
    return fields


class RequestBuilder:
    """Builds a request for each message from a fixed method and URL pattern."""

    def __init__(self, method: HttpMethod, pattern: str) -> None:
        self.method = method
        self.pattern = pattern

    def build(self, raw: bytes) -> RequestDescriptor | None:
        """Return the request for this message, or None if it cannot be translated."""
        match self.method:
            case HttpMethod.POST:
                return RequestDescriptor(method=HttpMethod.POST, url=self.pattern, body=raw)
            case _:
                try:
                    fields = decode(raw)
                except DecodeError as err:
                    logger.debug("could not decode message: %s", err)
                    return None
                if not fields:
                    logger.debug("message has no string fields to substitute")
                    return None
                return RequestDescriptor(method=HttpMethod.GET, url=resolve(self.pattern, fields))
