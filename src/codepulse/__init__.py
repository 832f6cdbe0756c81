"""CodePulse: live codebase analysis with a self-healing feedback loop."""

from codepulse._version import __version__
from codepulse.core.config import CodePulseConfig, HealConfig, load_config
from codepulse.heal.controller import SelfHealController
from codepulse.issues.detector import IssueDetector
from codepulse.scanner.engine import NullStageTimer, ScanOrchestrator, SleepStageTimer
from codepulse.scanner.source import DirectorySourceProvider, MappingSourceProvider

__all__ = [
    "__version__",
    "CodePulseConfig",
    "HealConfig",
    "load_config",
    "ScanOrchestrator",
    "SleepStageTimer",
    "NullStageTimer",
    "DirectorySourceProvider",
    "MappingSourceProvider",
    "IssueDetector",
    "SelfHealController",
]
