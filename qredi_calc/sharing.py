"""Shareable links for simulated credits.

A share link carries every simulated credit as a JSON array of
``{"originalMessage", "rawApiResponse"}`` objects, UTF-8 encoded, base64
encoded and passed in the ``data`` query parameter. The receiving page
recalculates rates and interest from the raw replies, so only the inputs
travel in the link.

Long links can be shortened through a TinyURL-compatible API. Shortening is
best effort: any failure falls back to the long link.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Iterable, List, Optional
from urllib.parse import urlencode

import httpx

from .data_models import SharedRecord
from .errors import ShareDecodeError, ShareEncodeError

logger = logging.getLogger(__name__)

SHARE_PATH = "/compartido"
DEFAULT_SHORTENER_URL = "https://api.tinyurl.com/create"


def _as_dict(record: Any) -> dict:
    if isinstance(record, SharedRecord):
        return record.to_dict()
    return {
        "originalMessage": record.get("originalMessage", ""),
        "rawApiResponse": record.get("rawApiResponse"),
    }


def encode_share_payload(records: Iterable[Any]) -> str:
    """Encode records (``SharedRecord`` or plain dicts) into a share parameter."""
    payload = [_as_dict(r) for r in records]
    if not payload:
        raise ShareEncodeError("Simulate at least one credit before sharing.")
    data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    return base64.b64encode(data).decode("ascii")


def build_share_url(base_url: str, records: Iterable[Any], path: str = SHARE_PATH) -> str:
    """Return the full share link for ``records``."""
    query = urlencode({"data": encode_share_payload(records)})
    return f"{base_url.rstrip('/')}{path}?{query}"


def decode_share_payload(data: Optional[str]) -> List[SharedRecord]:
    """Decode a share parameter back into records.

    Both the standard and the URL-safe base64 alphabets are accepted, with or
    without padding.

    Raises
    ------
    ShareDecodeError
        If the parameter is missing or does not hold a list of records.
    """
    if not data or not data.strip():
        raise ShareDecodeError("No shared information was found.")
    cleaned = data.strip().replace(" ", "+")
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        raw = base64.b64decode(cleaned, altchars=b"-_", validate=False)
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise ShareDecodeError("Invalid share link: the data could not be decoded.") from exc

    if isinstance(payload, dict):
        payload = [payload]
    if not isinstance(payload, list):
        raise ShareDecodeError("Invalid share link: expected a list of credits.")

    records: List[SharedRecord] = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict) or not isinstance(item.get("rawApiResponse"), dict):
            raise ShareDecodeError(f"Invalid share link: credit {index + 1} has no data.")
        message = item.get("originalMessage") or ""
        records.append(SharedRecord(original_message=str(message), raw_api_response=item["rawApiResponse"]))
    return records


class LinkShortener:
    """Client of a TinyURL-compatible link shortening API."""

    def __init__(
        self,
        api_url: str = DEFAULT_SHORTENER_URL,
        token: Optional[str] = None,
        *,
        domain: str = "tinyurl.com",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._api_url = api_url
        self._token = token
        self._domain = domain
        self._timeout = timeout
        self._transport = transport

    def shorten(self, url: str) -> str:
        """Return a short link for ``url``, or ``url`` itself on failure."""
        if not self._token:
            return url
        headers = {"Authorization": f"Bearer {self._token}"}
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(
                    self._api_url,
                    json={"url": url, "domain": self._domain},
                    headers=headers,
                )
                response.raise_for_status()
                body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Link shortening failed, using long link: %s", exc)
            return url

        short = (body.get("data") or {}).get("tiny_url") if isinstance(body, dict) else None
        if not short:
            logger.warning("Shortener response missing tiny_url: %s", body)
            return url
        return short
