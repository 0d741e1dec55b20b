"""Client of the remote text-understanding service.

The service receives the user's free-text description of a credit and
replies with the structured terms (``monto``, ``valor_tasa``, ``tipo_tasa``,
``periodo``, ``capitalizacion``, ``plazo_unidad_de_tiempo``) or, when the
description is incomplete, with ``faltantes`` set and a follow-up question in
``pregunta``.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from .data_models import ExtractionReply
from .errors import ExtractionError

logger = logging.getLogger(__name__)

DEFAULT_EXTRACTION_URL = "https://backend-pmc.onrender.com/chatGPT"
DEFAULT_FOLLOW_UP = "Por favor, especifica el monto, tasa, tipo de tasa y plazo."


class ExtractionClient:
    """Sends credit descriptions to the extraction service."""

    def __init__(
        self,
        url: str = DEFAULT_EXTRACTION_URL,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    def extract(self, message: str) -> ExtractionReply:
        """Return the structured terms, or the follow-up question, for ``message``.

        Raises ``ExtractionError`` when the message is empty or the service
        cannot be reached or answers with something other than a JSON object.
        """
        message = (message or "").strip()
        if not message:
            raise ExtractionError("Write a description of the credit first.")

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(self._url, json={"texto_usuario": message})
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error("Extraction service returned %s", exc.response.status_code)
            raise ExtractionError(
                f"The extraction service returned status {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Extraction service unreachable: %s", exc)
            raise ExtractionError("The extraction service could not be reached.") from exc
        except ValueError as exc:
            raise ExtractionError("The extraction service returned an invalid response.") from exc

        if not isinstance(data, dict):
            raise ExtractionError("The extraction service returned an invalid response.")
        if data.get("faltantes"):
            return ExtractionReply(follow_up=data.get("pregunta") or DEFAULT_FOLLOW_UP)
        return ExtractionReply(terms=data)
