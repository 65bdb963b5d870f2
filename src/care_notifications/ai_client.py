"""Client for the external AI health analysis function.

The analysis itself happens elsewhere; this module only calls it and
validates the finished result so the AI passthrough rule can consume it.
"""
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from .config import EngineSettings, get_settings
from .errors import AIAnalysisError
from .models.alerts import TenantContext
from .models.domain import AIAnalysisResult

logger = logging.getLogger(__name__)


class AIAnalysisClient:
    """Invokes the analysis endpoint with ``{userId, residentId}``."""

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        settings: Optional[EngineSettings] = None,
    ):
        settings = settings or get_settings()
        self.url = url or settings.ai_analysis_url
        self.api_key = api_key or settings.ai_api_key
        self.timeout = timeout or settings.ai_timeout_seconds
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.url)

    async def analyze(
        self,
        context: TenantContext,
        resident_id: Optional[str] = None,
    ) -> AIAnalysisResult:
        """Request an analysis for the caller, optionally for one resident."""
        if not self.configured:
            raise AIAnalysisError("AI analysis endpoint is not configured")

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        logger.info(f"[AI] Requesting analysis for {context.scope} (resident={resident_id})")
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.url,
                    json={
                        "userId": context.user_id,
                        "organizationId": context.tenant_id,
                        "residentId": resident_id,
                    },
                    headers=headers,
                )
        except httpx.HTTPError as e:
            logger.error(f"[AI] Analysis request failed: {e}")
            raise AIAnalysisError(f"AI analysis request failed: {e}") from e

        if response.status_code != 200:
            raise AIAnalysisError(
                f"AI analysis returned status {response.status_code}: {response.text}"
            )

        try:
            result = AIAnalysisResult.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise AIAnalysisError(f"Malformed AI analysis result: {e}") from e

        logger.info(
            f"[AI] Analysis returned {len(result.insights)} insights, "
            f"risk score {result.risk_score:.2f}"
        )
        return result
