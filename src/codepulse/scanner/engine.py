"""Scan orchestrator: drives the staged pipeline and produces scan results."""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime
from typing import Callable, Protocol, Sequence

from codepulse.core.config import CodePulseConfig
from codepulse.core.errors import InvalidTransition, ModuleReadFailure, ScanInProgress
from codepulse.core.models import ModuleRecord, ProgressEvent, ScanResult, ScanStage
from codepulse.issues.detector import IssueDetector
from codepulse.scanner.categorizer import Categorizer
from codepulse.scanner.complexity import ComplexityEstimator
from codepulse.scanner.density import PatternDensityScorer
from codepulse.scanner.descriptor import describe
from codepulse.scanner.modularization import has_superseding_modules
from codepulse.scanner.scoring import (
    HeuristicPredictor,
    SignaturePredictor,
    aggregate_density,
    compute_category_profile,
    sort_modules,
)
from codepulse.scanner.source import ModuleSourceProvider, fetch, normalize_path

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]

SCAN_WEIGHT = 40.0

# (stage, progress at start, progress at end, tick count)
SYNTHETIC_STAGES = (
    (ScanStage.EXTRACTING, 40.0, 60.0, 4),
    (ScanStage.MATCHING, 60.0, 80.0, 5),
    (ScanStage.PREDICTING, 80.0, 100.0, 5),
)

_TRANSITIONS = {
    ScanStage.IDLE: {ScanStage.SCANNING},
    ScanStage.SCANNING: {ScanStage.EXTRACTING},
    ScanStage.EXTRACTING: {ScanStage.MATCHING},
    ScanStage.MATCHING: {ScanStage.PREDICTING},
    ScanStage.PREDICTING: {ScanStage.COMPLETE},
    ScanStage.COMPLETE: {ScanStage.SCANNING},
}


class StageTimer(Protocol):
    """Pacing strategy for the pipeline's suspension points."""

    async def after_module(self) -> None:
        ...

    async def tick(self, stage: ScanStage) -> None:
        ...


class NullStageTimer:
    """Batch mode: yield to the event loop without waiting."""

    async def after_module(self) -> None:
        await asyncio.sleep(0)

    async def tick(self, stage: ScanStage) -> None:
        await asyncio.sleep(0)


class SleepStageTimer:
    """Interactive mode: small real delays so progress is perceptible."""

    def __init__(
        self,
        module_delay: float = 0.15,
        stage_delay: float = 0.2,
        stage_delays: dict[ScanStage, float] | None = None,
    ):
        self.module_delay = module_delay
        self.stage_delay = stage_delay
        self.stage_delays = dict(stage_delays or {})

    async def after_module(self) -> None:
        await asyncio.sleep(self.module_delay)

    async def tick(self, stage: ScanStage) -> None:
        await asyncio.sleep(self.stage_delays.get(stage, self.stage_delay))


class ScanOrchestrator:
    """Runs ``idle -> scanning -> extracting -> matching -> predicting -> complete``.

    One instance owns its version counter, its cached result and its
    single-flight lock, so independent instances never share state.
    """

    def __init__(
        self,
        provider: ModuleSourceProvider,
        config: CodePulseConfig | None = None,
        *,
        timer: StageTimer | None = None,
        predictor: SignaturePredictor | None = None,
        detector: IssueDetector | None = None,
        categorizer: Categorizer | None = None,
        complexity: ComplexityEstimator | None = None,
        density: PatternDensityScorer | None = None,
        on_progress: ProgressCallback | None = None,
    ):
        self.provider = provider
        self.config = config or CodePulseConfig()
        self.timer = timer or NullStageTimer()
        self.predictor = predictor or HeuristicPredictor()
        self.detector = detector or IssueDetector(self.config.detect)
        self.categorizer = categorizer or Categorizer.with_overrides(self.config.scan.category_markers)
        self.complexity = complexity or ComplexityEstimator()
        self.density = density or PatternDensityScorer()
        self.on_progress = on_progress

        self._skip = [re.compile(p, re.IGNORECASE) for p in self.config.scan.skip_patterns]
        self._lock = asyncio.Lock()
        self._state = ScanStage.IDLE
        self._version = 0
        self._latest: ScanResult | None = None
        self._cache_valid = False
        self._last_progress = 0.0
        self._callback: ProgressCallback | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> ScanStage:
        return self._state

    @property
    def latest(self) -> ScanResult | None:
        return self._latest

    @property
    def in_progress(self) -> bool:
        return self._lock.locked()

    def get_version(self) -> int:
        return self._version

    def invalidate(self) -> None:
        """Mark the cached result stale; the next ``analyze`` call rescans."""
        self._cache_valid = False

    def is_skipped(self, path: str) -> bool:
        """True for test, type-declaration and generated modules."""
        return any(rx.search(path) for rx in self._skip)

    async def analyze(self, fresh: bool = False) -> ScanResult:
        """Return the cached result when valid, otherwise scan.

        ``fresh=True`` invalidates first and waits for any in-flight scan
        rather than interrupting it.
        """
        if fresh:
            self.invalidate()
        elif self._cache_valid and self._latest is not None:
            return self._latest
        return await self.scan(wait=True)

    async def scan(
        self,
        wait: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> ScanResult:
        """Run one full scan.

        Raises ScanInProgress if another scan is running, unless *wait* is
        set, in which case the call blocks until that scan finishes.
        """
        if self._lock.locked() and not wait:
            raise ScanInProgress("A scan is already running")

        async with self._lock:
            self._callback = on_progress or self.on_progress
            self._last_progress = 0.0
            try:
                result = await self._run()
            except BaseException:
                self._state = ScanStage.IDLE
                raise
            finally:
                self._callback = None

            self._latest = result
            self._version = result.version
            self._cache_valid = True
            self._advance(ScanStage.COMPLETE)
            self._emit(100.0, callback=on_progress or self.on_progress)
            logger.info(
                "Scan %s complete: %d modules, %d issues",
                result.fingerprint, result.module_count, len(result.issues),
            )
            return result

    def analyze_module(self, path: str, content: str, all_paths: Sequence[str]) -> ModuleRecord:
        """Run every per-module scorer. Pure in (path, content, all_paths)."""
        category = self.categorizer.categorize(path)
        report = self.complexity.measure(content)
        return ModuleRecord(
            path=path,
            category=category,
            lines_of_code=report.lines,
            complexity=report.complexity,
            pattern_density=self.density.score(content, category),
            description=describe(content, category),
            content_preview=content[: self.config.scan.preview_length],
            has_superseding_modules=has_superseding_modules(path, all_paths),
        )

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _run(self) -> ScanResult:
        self._advance(ScanStage.SCANNING)
        self._emit(0.0)

        targets = self._collect_targets()
        all_paths = [path for path, _ in targets]
        records: list[ModuleRecord] = []
        skipped: list[str] = []

        for index, (path, source_key) in enumerate(targets, start=1):
            try:
                content = await fetch(self.provider, source_key)
            except ModuleReadFailure as exc:
                logger.warning("Skipping module: %s", exc)
                skipped.append(path)
            else:
                records.append(self.analyze_module(path, content, all_paths))
            self._emit(index / len(targets) * SCAN_WEIGHT, path)
            await self.timer.after_module()

        if not targets:
            self._emit(SCAN_WEIGHT)

        for stage, start, end, ticks in SYNTHETIC_STAGES:
            self._advance(stage)
            step = (end - start) / ticks
            for tick in range(1, ticks + 1):
                await self.timer.tick(stage)
                self._emit(start + tick * step)

        return self._assemble(records, skipped)

    def _collect_targets(self) -> list[tuple[str, str]]:
        """(normalized path, provider key) for every scannable module, first occurrence wins."""
        seen: set[str] = set()
        targets = []
        for key in self.provider.paths():
            path = normalize_path(key)
            if path in seen or self.is_skipped(path):
                continue
            seen.add(path)
            targets.append((path, key))
        return targets

    def _assemble(self, records: list[ModuleRecord], skipped: list[str]) -> ScanResult:
        modules = sort_modules(records)
        profile = compute_category_profile(modules)
        density = aggregate_density(modules)
        version = self._version + 1
        signature = self.predictor.predict(modules, profile, density, version)
        issues = self.detector.detect(modules)

        return ScanResult(
            modules=tuple(modules),
            category_profile=profile,
            aggregate_pattern_density=density,
            archetype=signature.archetype,
            archetype_description=signature.archetype_description,
            fingerprint=signature.fingerprint,
            prediction=signature.prediction,
            issues=tuple(issues),
            scanned_at=datetime.now(),
            version=version,
            total_lines=sum(m.lines_of_code for m in modules),
            skipped_paths=tuple(skipped),
        )

    # ------------------------------------------------------------------
    # State and progress
    # ------------------------------------------------------------------

    def _advance(self, stage: ScanStage) -> None:
        if stage not in _TRANSITIONS[self._state]:
            raise InvalidTransition(f"Cannot move from {self._state.value} to {stage.value}")
        logger.debug("Scan stage %s -> %s", self._state.value, stage.value)
        self._state = stage

    def _emit(
        self,
        progress: float,
        current_path: str | None = None,
        callback: ProgressCallback | None = None,
    ) -> None:
        callback = callback or self._callback
        self._last_progress = max(self._last_progress, min(progress, 100.0))
        if callback is not None:
            callback(ProgressEvent(self._state, self._last_progress, current_path))
