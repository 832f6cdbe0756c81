"""Tests for the scan orchestrator."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from codepulse.core.errors import ScanInProgress
from codepulse.core.models import Category, ProgressEvent, ScanResult, ScanStage
from codepulse.scanner.engine import ScanOrchestrator, SleepStageTimer
from codepulse.scanner.source import MappingSourceProvider

CORE_MODULE = (
    "export interface TemporalSignature { fingerprint: string; archetype: string }\n"
    "export function extractSignature(values) {\n"
    "  return values.map((v) => v * 2);\n"
    "}\n"
)


def _project() -> dict:
    return {
        "src/lib/pensent-core/signature.ts": CORE_MODULE,
        "src/lib/chess/adapter.ts": 'import { x } from "@/lib/pensent-core/signature";\nexport const pattern = 1;\n',
        "src/components/Board.tsx": "export function Board() {\n  return null;\n}\n",
        "src/utils/format.ts": "export const pad = (s) => s;\n",
        "src/utils/format.test.ts": "test('pads', () => {});\n",
        "src/types/api.d.ts": "declare const x: number;\n",
        "tests/test_engine.py": "def test_x():\n    pass\n",
    }


@pytest.fixture()
def orchestrator() -> ScanOrchestrator:
    return ScanOrchestrator(MappingSourceProvider(_project()))


class TestScan:
    @pytest.mark.asyncio
    async def test_scan_produces_result(self, orchestrator: ScanOrchestrator):
        result = await orchestrator.scan()

        assert isinstance(result, ScanResult)
        assert orchestrator.state == ScanStage.COMPLETE
        assert orchestrator.latest is result
        assert result.version == 1
        assert result.fingerprint.startswith("EP-1-")
        assert result.module_count == 4

    @pytest.mark.asyncio
    async def test_skips_test_declaration_and_generated_modules(self, orchestrator: ScanOrchestrator):
        result = await orchestrator.scan()
        paths = {m.path for m in result.modules}

        assert "src/utils/format.test.ts" not in paths
        assert "src/types/api.d.ts" not in paths
        assert "tests/test_engine.py" not in paths

    @pytest.mark.asyncio
    async def test_modules_are_presentation_sorted(self, orchestrator: ScanOrchestrator):
        result = await orchestrator.scan()
        categories = [m.category for m in result.modules]

        assert categories == [Category.CORE, Category.DOMAIN_A, Category.UI, Category.UTILITY]

    @pytest.mark.asyncio
    async def test_rescan_bumps_version_and_keeps_issues(self, orchestrator: ScanOrchestrator):
        first = await orchestrator.scan()
        second = await orchestrator.scan()

        assert second.version == first.version + 1
        assert orchestrator.get_version() == 2
        assert second.fingerprint != first.fingerprint
        assert [i.to_dict() for i in second.issues] == [i.to_dict() for i in first.issues]

    @pytest.mark.asyncio
    async def test_total_lines_and_profile(self, orchestrator: ScanOrchestrator):
        result = await orchestrator.scan()

        assert result.total_lines == sum(m.lines_of_code for m in result.modules)
        assert sum(result.category_profile.values()) == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_empty_project(self):
        orchestrator = ScanOrchestrator(MappingSourceProvider({}))
        result = await orchestrator.scan()

        assert result.modules == ()
        assert result.category_profile == {}
        assert result.aggregate_pattern_density == 0.0
        assert result.archetype == "empty"
        assert result.issues == ()

    def test_analyze_module_is_pure(self, orchestrator: ScanOrchestrator):
        first = orchestrator.analyze_module("src/lib/pensent-core/a.ts", CORE_MODULE, [])
        second = orchestrator.analyze_module("src/lib/pensent-core/a.ts", CORE_MODULE, [])

        assert first == second
        assert first.category == Category.CORE
        assert first.content_preview == CORE_MODULE[:200]
        assert first.description == "Exports TemporalSignature, extractSignature"


class TestReadFailures:
    @pytest.mark.asyncio
    async def test_unreadable_module_is_skipped(self):
        def broken() -> str:
            raise OSError("permission denied")

        modules = _project()
        modules["src/utils/broken.ts"] = broken
        orchestrator = ScanOrchestrator(MappingSourceProvider(modules))

        result = await orchestrator.scan()

        assert result.skipped_paths == ("src/utils/broken.ts",)
        assert result.module("src/utils/broken.ts") is None
        assert result.module_count == 4
        assert orchestrator.state == ScanStage.COMPLETE

    @pytest.mark.asyncio
    async def test_unexpected_accessor_error_is_skipped(self):
        def backend_down() -> str:
            raise RuntimeError("provider backend unavailable")

        provider = MappingSourceProvider({
            "src/utils/a.ts": "export const a = 1;\n",
            "src/utils/b.ts": backend_down,
        })
        orchestrator = ScanOrchestrator(provider)

        result = await orchestrator.scan()

        assert result.skipped_paths == ("src/utils/b.ts",)
        assert [m.path for m in result.modules] == ["src/utils/a.ts"]
        assert orchestrator.state == ScanStage.COMPLETE


class TestProgress:
    @pytest.mark.asyncio
    async def test_progress_is_monotonic_and_complete(self, orchestrator: ScanOrchestrator):
        events: list[ProgressEvent] = []
        await orchestrator.scan(on_progress=events.append)

        values = [e.progress for e in events]
        assert values[0] == 0.0
        assert values[-1] == 100.0
        assert values == sorted(values)
        assert all(0.0 <= v <= 100.0 for v in values)

    @pytest.mark.asyncio
    async def test_module_progress_reaches_forty(self, orchestrator: ScanOrchestrator):
        events: list[ProgressEvent] = []
        await orchestrator.scan(on_progress=events.append)

        scanning = [e for e in events if e.stage == ScanStage.SCANNING and e.current_path]
        assert [e.current_path for e in scanning] == [
            "src/lib/pensent-core/signature.ts",
            "src/lib/chess/adapter.ts",
            "src/components/Board.tsx",
            "src/utils/format.ts",
        ]
        assert scanning[-1].progress == pytest.approx(40.0)

    @pytest.mark.asyncio
    async def test_stages_run_in_order(self, orchestrator: ScanOrchestrator):
        events: list[ProgressEvent] = []
        await orchestrator.scan(on_progress=events.append)

        stages = []
        for event in events:
            if not stages or stages[-1] != event.stage:
                stages.append(event.stage)
        assert stages == [
            ScanStage.SCANNING,
            ScanStage.EXTRACTING,
            ScanStage.MATCHING,
            ScanStage.PREDICTING,
            ScanStage.COMPLETE,
        ]

    @pytest.mark.asyncio
    async def test_constructor_callback_is_used(self):
        events: list[ProgressEvent] = []
        orchestrator = ScanOrchestrator(MappingSourceProvider({}), on_progress=events.append)
        await orchestrator.scan()

        assert events[-1].progress == 100.0


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_concurrent_scan_is_rejected(self):
        gate = asyncio.Event()

        async def slow() -> str:
            await gate.wait()
            return "export const a = 1;\n"

        orchestrator = ScanOrchestrator(MappingSourceProvider({"src/a.ts": slow}))
        running = asyncio.create_task(orchestrator.scan())
        while not orchestrator.in_progress:
            await asyncio.sleep(0)

        with pytest.raises(ScanInProgress):
            await orchestrator.scan()

        gate.set()
        result = await running
        assert result.version == 1

    @pytest.mark.asyncio
    async def test_fresh_analysis_waits_for_running_scan(self):
        gate = asyncio.Event()

        async def slow() -> str:
            await gate.wait()
            return "export const a = 1;\n"

        orchestrator = ScanOrchestrator(MappingSourceProvider({"src/a.ts": slow}))
        running = asyncio.create_task(orchestrator.scan())
        while not orchestrator.in_progress:
            await asyncio.sleep(0)

        fresh = asyncio.create_task(orchestrator.analyze(fresh=True))
        await asyncio.sleep(0)
        gate.set()

        first, second = await asyncio.gather(running, fresh)
        assert first.version == 1
        assert second.version == 2

    @pytest.mark.asyncio
    async def test_analyze_reuses_valid_cache(self, orchestrator: ScanOrchestrator):
        first = await orchestrator.analyze()
        second = await orchestrator.analyze()
        assert second is first

        orchestrator.invalidate()
        third = await orchestrator.analyze()
        assert third.version == 2

    @pytest.mark.asyncio
    async def test_failed_scan_publishes_nothing(self):
        predictor = MagicMock()
        predictor.predict.side_effect = RuntimeError("collaborator down")
        orchestrator = ScanOrchestrator(MappingSourceProvider(_project()), predictor=predictor)

        with pytest.raises(RuntimeError):
            await orchestrator.scan()

        assert orchestrator.latest is None
        assert orchestrator.state == ScanStage.IDLE
        assert orchestrator.get_version() == 0
        assert not orchestrator.in_progress


class TestStageTimer:
    @pytest.mark.asyncio
    async def test_sleep_timer_uses_configured_delays(self):
        timer = SleepStageTimer(module_delay=0.1, stage_delay=0.2, stage_delays={ScanStage.MATCHING: 0.5})

        with patch("codepulse.scanner.engine.asyncio.sleep", new=AsyncMock()) as sleep:
            await timer.after_module()
            await timer.tick(ScanStage.EXTRACTING)
            await timer.tick(ScanStage.MATCHING)

        assert [c.args[0] for c in sleep.await_args_list] == [0.1, 0.2, 0.5]

    @pytest.mark.asyncio
    async def test_zero_delay_timer_completes_scan(self):
        orchestrator = ScanOrchestrator(
            MappingSourceProvider(_project()),
            timer=SleepStageTimer(module_delay=0, stage_delay=0),
        )
        result = await orchestrator.scan()
        assert result.module_count == 4
