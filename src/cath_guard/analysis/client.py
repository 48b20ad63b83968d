"""HTTP client for a Deep3-compatible risk analysis API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from cath_guard.analysis.models import Deep3Analysis, RiskVerdict, verdict_for_score
from cath_guard.exceptions import SupplierError

logger = logging.getLogger(__name__)


class Deep3HttpClient:
    """Risk analyzer backed by a remote Deep3 endpoint.

    The endpoint is expected at ``{base_url}/analyze/{token_address}`` and to
    answer with ``riskScore``, ``classification``, ``confidence``,
    ``metadata`` and ``recommendations``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: API base URL.
            api_key: Optional bearer token.
            timeout: HTTP request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}

    async def analyze_token(self, token_address: str) -> Deep3Analysis:
        """Fetch the risk analysis of a token.

        Raises:
            SupplierError: If the response is not a usable analysis.
            httpx.HTTPError: On transport failures or non-2xx responses.
        """
        url = f"{self.base_url}/analyze/{token_address}"
        async with httpx.AsyncClient(timeout=self.timeout, headers=self._headers) as client:
            response = await client.get(url)
            response.raise_for_status()
            try:
                payload = response.json()
            except ValueError as e:
                raise SupplierError("Deep3 response is not JSON") from e

        if not isinstance(payload, dict):
            raise SupplierError("Deep3 response is not an object")
        return self._parse(token_address, payload)

    @staticmethod
    def _parse(token_address: str, payload: dict[str, Any]) -> Deep3Analysis:
        try:
            risk_score = int(payload["riskScore"])
        except (KeyError, TypeError, ValueError) as e:
            raise SupplierError("Deep3 response missing riskScore") from e

        if not 0 <= risk_score <= 100:
            raise SupplierError(f"Deep3 riskScore out of range: {risk_score}")

        try:
            verdict = RiskVerdict(payload.get("classification"))
        except ValueError:
            logger.debug(f"Unknown Deep3 classification, deriving from score {risk_score}")
            verdict = verdict_for_score(risk_score)

        try:
            confidence = int(payload.get("confidence", 0))
            metadata = dict(payload.get("metadata") or {})
            recommendations = tuple(payload.get("recommendations") or ())
        except (TypeError, ValueError) as e:
            raise SupplierError("Malformed Deep3 analysis fields") from e

        return Deep3Analysis(
            token_address=token_address,
            risk_score=risk_score,
            classification=verdict,
            confidence=confidence,
            metadata=metadata,
            recommendations=recommendations,
        )
