"""
Tests for the AI analysis client, using httpx.MockTransport in place of the
external analysis function.

Usage:
    pytest tests/test_ai_client.py -v
"""
import json

import httpx
import pytest

from care_notifications import AIAnalysisError
from care_notifications.ai_client import AIAnalysisClient
from care_notifications.config import EngineSettings

URL = "http://ai.test/functions/ai-health-analysis"

RESULT = {
    "insights": [
        {
            "type": "risk",
            "title": "Fall risk",
            "description": "Two falls in one week",
            "severity": "high",
            "confidence": 0.85,
            "dataPoints": 14,
            "recommendations": ["Review mobility aids"],
            "metadata": {"residentId": "res-1", "urgency": "soon"},
        }
    ],
    "summary": "Mobility is declining",
    "riskScore": 0.62,
    "nextReviewDate": "2024-03-22",
}


def make_client(handler, **kwargs) -> AIAnalysisClient:
    settings = EngineSettings(ai_analysis_url=None, ai_api_key=None)
    return AIAnalysisClient(
        url=kwargs.pop("url", URL),
        transport=httpx.MockTransport(handler),
        settings=settings,
        **kwargs,
    )


class TestAnalyze:
    """Successful analysis requests."""

    @pytest.mark.asyncio
    async def test_request_carries_caller_and_resident(self, context):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=RESULT)

        result = await make_client(handler, api_key="secret").analyze(context, "res-1")

        body = json.loads(requests[0].content)
        assert body == {"userId": "user-1", "organizationId": "org-1", "residentId": "res-1"}
        assert requests[0].headers["Authorization"] == "Bearer secret"
        assert result.risk_score == 0.62
        assert result.next_review_date == "2024-03-22"

    @pytest.mark.asyncio
    async def test_insight_fields_are_normalised(self, context):
        result = await make_client(lambda request: httpx.Response(200, json=RESULT)).analyze(context)

        insight = result.insights[0]
        assert insight.message == "Two falls in one week"
        assert insight.data_points == 14
        assert insight.effective_urgency == "soon"

    @pytest.mark.asyncio
    async def test_no_api_key_no_authorization_header(self, context):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"insights": []})

        await make_client(handler).analyze(context)

        assert seen["auth"] is None


class TestAnalyzeFailures:
    """Failures surface as AIAnalysisError."""

    @pytest.mark.asyncio
    async def test_error_status(self, context):
        client = make_client(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(AIAnalysisError, match="500"):
            await client.analyze(context)

    @pytest.mark.asyncio
    async def test_malformed_body(self, context):
        client = make_client(lambda request: httpx.Response(200, text="not json"))

        with pytest.raises(AIAnalysisError):
            await client.analyze(context)

    @pytest.mark.asyncio
    async def test_invalid_insight(self, context):
        client = make_client(
            lambda request: httpx.Response(200, json={"insights": [{"severity": "extreme"}]})
        )

        with pytest.raises(AIAnalysisError):
            await client.analyze(context)

    @pytest.mark.asyncio
    async def test_connection_error(self, context):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(AIAnalysisError):
            await make_client(handler).analyze(context)

    @pytest.mark.asyncio
    async def test_not_configured(self, context):
        client = make_client(lambda request: httpx.Response(200, json=RESULT), url=None)

        assert client.configured is False
        with pytest.raises(AIAnalysisError):
            await client.analyze(context)
