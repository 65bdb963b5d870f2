"""
Tests for the notification engine's evaluation passes.

Verifies:
1. Passes persist rule output once and are idempotent
2. A failed snapshot fetch aborts the pass without persisting
3. Data changes re-evaluate watched callers in the background
4. Concurrent passes for one tenant never duplicate alerts
5. Each caller only ever sees its own alerts
6. AI analysis results flow into alerts

Usage:
    pytest tests/test_engine.py -v
"""
import asyncio
from datetime import timedelta

import httpx
import pytest

from care_notifications import AIAnalysisError, SnapshotFetchError
from care_notifications.ai_client import AIAnalysisClient
from care_notifications.models import (
    AIAnalysisResult,
    AlertCategory,
    AlertFilter,
    AlertKind,
    TenantContext,
)
from care_notifications.rules import evaluate_health

from conftest import NOW, ORG

RESIDENTS = [{"id": "res-1", "name": "Maria Silva"}]
HIGH_PRESSURE = [{"residentId": "res-1", "systolicPressure": 190, "recordedAt": NOW}]


class FailingSource:
    """Snapshot source whose backend is down."""

    def __init__(self):
        self.calls = 0

    async def load_snapshot(self, context):
        self.calls += 1
        raise ConnectionError("facility database unreachable")


class TestEvaluationPass:
    """Single evaluation passes."""

    @pytest.mark.asyncio
    async def test_pass_persists_rule_output(self, engine, source, context):
        source.set_collection(ORG, "residents", RESIDENTS)
        source.set_collection(ORG, "vital_signs", HIGH_PRESSURE)

        result = await engine.evaluate(context)

        assert result.scope == ORG
        assert result.candidates == 1
        assert len(result.created) == 1
        assert result.created[0].title == "Abnormal Vital Signs"
        assert result.evaluated_at == NOW

    @pytest.mark.asyncio
    async def test_repeated_passes_are_idempotent(self, engine, source, context):
        source.set_collection(ORG, "residents", RESIDENTS)
        source.set_collection(ORG, "vital_signs", HIGH_PRESSURE)

        await engine.evaluate(context)
        second = await engine.evaluate(context)

        assert second.candidates == 1
        assert second.created == []
        assert len(await engine.list_alerts(context)) == 1

    @pytest.mark.asyncio
    async def test_standing_condition_is_not_duplicated_over_time(self, make_engine, source, context):
        """A critical resident is re-derived with a new timestamp every pass."""
        source.set_collection(ORG, "residents", [{"id": "res-1", "name": "Ana", "healthStatus": "critical"}])
        clock = iter([NOW, NOW + timedelta(hours=1)])
        engine = make_engine(clock=lambda: next(clock))

        await engine.evaluate(context)
        second = await engine.evaluate(context)

        assert second.created == []
        alerts = await engine.list_alerts(context)
        assert len(alerts) == 1
        assert alerts[0].timestamp == NOW

    @pytest.mark.asyncio
    async def test_empty_snapshot_creates_nothing(self, engine, context):
        result = await engine.evaluate(context)

        assert result.candidates == 0
        assert await engine.list_alerts(context) == []

    @pytest.mark.asyncio
    async def test_refresh_returns_reloaded_alerts(self, engine, source, context):
        source.set_collection(ORG, "vital_signs", HIGH_PRESSURE)

        result = await engine.refresh(context)

        assert len(result.created) == 1
        assert [a.id for a in result.alerts] == [a.id for a in result.created]


class TestFailureHandling:
    """Fetch failures and broken evaluators."""

    @pytest.mark.asyncio
    async def test_fetch_failure_aborts_pass(self, make_engine, store, context):
        engine = make_engine(source=FailingSource())

        with pytest.raises(SnapshotFetchError):
            await engine.evaluate(context)

        assert store.list_alerts(context) == []

    @pytest.mark.asyncio
    async def test_broken_evaluator_is_isolated(self, make_engine, source, context):
        def broken(snapshot, now):
            raise KeyError("missing field")

        source.set_collection(ORG, "vital_signs", HIGH_PRESSURE)
        engine = make_engine(evaluators={"broken": broken, "health": evaluate_health})

        result = await engine.evaluate(context)

        assert len(result.created) == 1

    @pytest.mark.asyncio
    async def test_background_failure_is_logged_not_raised(self, make_engine, notifier, context):
        failing = FailingSource()
        engine = make_engine(source=failing)
        engine.watch(context)

        notifier.notify(ORG, "vital_signs")
        await engine.wait_idle()

        assert failing.calls == 1


class TestChangeDrivenEvaluation:
    """Re-evaluation triggered by provider change notifications."""

    @pytest.mark.asyncio
    async def test_data_change_triggers_pass_for_watched_tenant(self, engine, source, context):
        engine.watch(context)

        source.set_collection(ORG, "vital_signs", HIGH_PRESSURE)
        await engine.wait_idle()

        alerts = await engine.list_alerts(context)
        assert [a.title for a in alerts] == ["Abnormal Vital Signs"]

    @pytest.mark.asyncio
    async def test_unwatched_tenant_is_not_evaluated(self, engine, source, context, other_context):
        engine.watch(other_context)

        source.set_collection(ORG, "vital_signs", HIGH_PRESSURE)
        await engine.wait_idle()

        assert await engine.list_alerts(context) == []

    @pytest.mark.asyncio
    async def test_burst_of_changes_is_coalesced(self, engine, source, context):
        events = []
        engine.add_listener(events.append)
        engine.watch(context)

        source.set_collection(ORG, "residents", RESIDENTS)
        source.set_collection(ORG, "vital_signs", HIGH_PRESSURE)
        source.set_collection(ORG, "caregivers", [])
        await engine.wait_idle()

        created = [e for e in events if e.action == "created"]
        assert len(created) == 1
        assert created[0].alerts[0].subject_name == "Maria Silva"

    @pytest.mark.asyncio
    async def test_unwatch_stops_evaluation(self, engine, source, context):
        engine.watch(context)
        engine.unwatch(context)

        source.set_collection(ORG, "vital_signs", HIGH_PRESSURE)
        await engine.wait_idle()

        assert await engine.list_alerts(context) == []

    @pytest.mark.asyncio
    async def test_unwatch_forgets_caller(self, engine, context, admin_context):
        engine.watch(context)
        engine.watch(admin_context)

        engine.unwatch(context)
        engine.unwatch(admin_context)

        assert not engine.is_watched(context)
        assert not engine.is_watched(admin_context)
        assert engine._watched == {}

    @pytest.mark.asyncio
    async def test_caller_stays_watched_until_last_watcher_leaves(self, engine, source, context):
        engine.watch(context)
        engine.watch(context)
        engine.unwatch(context)

        source.set_collection(ORG, "vital_signs", HIGH_PRESSURE)
        await engine.wait_idle()

        assert engine.is_watched(context)
        assert len(await engine.list_alerts(context)) == 1

        engine.unwatch(context)
        assert not engine.is_watched(context)

    @pytest.mark.asyncio
    async def test_unwatch_without_watch_is_harmless(self, engine, context):
        engine.unwatch(context)
        assert not engine.is_watched(context)

    @pytest.mark.asyncio
    async def test_close_detaches_from_notifier(self, engine, source, context):
        engine.watch(context)
        await engine.close()

        source.set_collection(ORG, "vital_signs", HIGH_PRESSURE)
        await engine.wait_idle()

        assert await engine.list_alerts(context) == []


class TestConcurrency:
    """Passes racing for the same tenant."""

    @pytest.mark.asyncio
    async def test_concurrent_passes_create_each_alert_once(self, engine, source, context, admin_context):
        source.set_collection(ORG, "residents", RESIDENTS)
        source.set_collection(ORG, "vital_signs", HIGH_PRESSURE)
        source.set_collection(ORG, "monthly_fees", [{"amount": 500, "status": "overdue"}])

        results = await asyncio.gather(
            engine.evaluate(context),
            engine.evaluate(context),
            engine.evaluate(admin_context),
        )

        created = [a for r in results for a in r.created]
        staff = await engine.list_alerts(context)
        admin = await engine.list_alerts(admin_context)
        assert len(staff) == 2
        assert len(admin) == 3
        assert len(created) == len(staff) + len(admin)

    @pytest.mark.asyncio
    async def test_tenants_do_not_share_alerts(self, engine, source, context, other_context):
        source.set_collection(ORG, "vital_signs", HIGH_PRESSURE)

        await asyncio.gather(engine.evaluate(context), engine.evaluate(other_context))

        assert len(await engine.list_alerts(context)) == 1
        assert await engine.list_alerts(other_context) == []


class TestCallerIsolation:
    """Colleagues in one tenant keep separate alert sets."""

    @pytest.mark.asyncio
    async def test_admin_staffing_alert_is_not_listed_for_staff(self, engine, context, admin_context):
        await engine.evaluate(admin_context)

        staff_titles = [a.title for a in await engine.list_alerts(context)]
        admin_titles = [a.title for a in await engine.list_alerts(admin_context)]

        assert staff_titles == []
        assert admin_titles == ["Few Active Caregivers"]
        assert (await engine.get_summary(context)).total == 0

    @pytest.mark.asyncio
    async def test_read_flag_is_per_user(self, engine, source, context, admin_context):
        source.set_collection(ORG, "vital_signs", HIGH_PRESSURE)
        await engine.evaluate(context)
        await engine.evaluate(admin_context)
        admin_vitals = next(
            a for a in await engine.list_alerts(admin_context) if a.category == AlertCategory.HEALTH
        )

        await engine.lifecycle.mark_read(admin_context, admin_vitals.id)

        staff_alerts = await engine.list_alerts(context)
        assert len(staff_alerts) == 1
        assert staff_alerts[0].id != admin_vitals.id
        assert staff_alerts[0].read is False

    @pytest.mark.asyncio
    async def test_background_pass_creates_alerts_for_each_watcher(
        self, engine, source, context, admin_context
    ):
        engine.watch(context)
        engine.watch(admin_context)

        source.set_collection(ORG, "vital_signs", HIGH_PRESSURE)
        await engine.wait_idle()

        staff = await engine.list_alerts(context)
        admin = await engine.list_alerts(admin_context)
        assert [a.user_id for a in staff] == ["user-1"]
        assert {a.user_id for a in admin} == {"admin-1"}
        assert "Few Active Caregivers" not in {a.title for a in staff}


class TestAIAnalysis:
    """AI analysis ingestion."""

    ANALYSIS = {
        "summary": "One concern",
        "riskScore": 0.4,
        "insights": [
            {"title": "Weight loss", "description": "Lost 3kg this month", "severity": "high", "confidence": 0.8},
        ],
    }

    @pytest.mark.asyncio
    async def test_ingested_analysis_becomes_alert(self, engine, context):
        result = await engine.ingest_ai_analysis(context, AIAnalysisResult.model_validate(self.ANALYSIS))

        assert len(result.created) == 1
        alert = result.created[0]
        assert alert.category == AlertCategory.AI
        assert alert.kind == AlertKind.WARNING

    @pytest.mark.asyncio
    async def test_analysis_is_kept_for_later_passes(self, engine, context):
        await engine.ingest_ai_analysis(context, AIAnalysisResult.model_validate(self.ANALYSIS))

        second = await engine.evaluate(context)

        assert second.candidates == 1
        assert second.created == []

    @pytest.mark.asyncio
    async def test_analysis_belongs_to_requesting_caller(self, engine, context, admin_context):
        await engine.ingest_ai_analysis(admin_context, AIAnalysisResult.model_validate(self.ANALYSIS))

        staff_pass = await engine.evaluate(context)

        assert staff_pass.created == []
        assert await engine.list_alerts(context) == []

    @pytest.mark.asyncio
    async def test_numeric_resident_id_does_not_drop_other_insights(self, engine, source, context):
        source.set_collection(ORG, "residents", [{"id": "42", "name": "Joao Souza"}])
        analysis = AIAnalysisResult.model_validate({
            "insights": [
                {
                    "title": "Fall risk",
                    "description": "Two falls this week",
                    "severity": "high",
                    "confidence": 0.9,
                    "metadata": {"residentId": 42},
                },
                {"title": "Weight loss", "description": "Lost 3kg", "severity": "medium", "confidence": 0.7},
            ],
        })

        result = await engine.ingest_ai_analysis(context, analysis)

        by_title = {a.title: a for a in result.created}
        assert set(by_title) == {"Fall risk", "Weight loss"}
        assert by_title["Fall risk"].subject_id == "42"
        assert by_title["Fall risk"].subject_name == "Joao Souza"

    @pytest.mark.asyncio
    async def test_analyze_without_client(self, engine, context):
        with pytest.raises(AIAnalysisError):
            await engine.analyze(context)

    @pytest.mark.asyncio
    async def test_analyze_with_client(self, make_engine, engine_settings, context):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=self.ANALYSIS)

        client = AIAnalysisClient(
            url="http://ai.test/analyze",
            transport=httpx.MockTransport(handler),
            settings=engine_settings,
        )
        engine = make_engine(ai_client=client)

        result = await engine.analyze(context, "res-1")

        assert [a.title for a in result.created] == ["Weight loss"]


class TestReads:
    """Listing and summary."""

    @pytest.mark.asyncio
    async def test_list_with_filter(self, engine, source, context):
        source.set_collection(ORG, "vital_signs", HIGH_PRESSURE)
        source.set_collection(ORG, "monthly_fees", [{"amount": 500, "status": "overdue"}])
        await engine.evaluate(context)

        financial = await engine.list_alerts(context, AlertFilter(category=AlertCategory.FINANCIAL))

        assert [a.title for a in financial] == ["Overdue Monthly Fees"]

    @pytest.mark.asyncio
    async def test_summary(self, engine, source, context):
        source.set_collection(ORG, "residents", [{"id": "res-1", "name": "Ana", "healthStatus": "critical"}])
        await engine.evaluate(context)

        summary = await engine.get_summary(context)

        assert summary.total == 1
        assert summary.critical == 1
        assert summary.by_category[AlertCategory.HEALTH] == 1

    @pytest.mark.asyncio
    async def test_caller_without_tenant_gets_personal_scope(self, engine, source):
        solo = TenantContext(user_id="solo")
        source.set_collection("user:solo", "vital_signs", HIGH_PRESSURE)

        result = await engine.evaluate(solo)

        assert result.scope == "user:solo"
        assert result.created[0].tenant_id == "user:solo"
        assert len(await engine.list_alerts(solo)) == 1
