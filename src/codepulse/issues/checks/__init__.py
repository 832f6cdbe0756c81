"""Issue detection rules, in the order the detector runs them."""

from codepulse.issues.checks.base import BaseCheck
from codepulse.issues.checks.coverage import CoreRatioCheck, DomainCoverageCheck
from codepulse.issues.checks.density import LowDensityCheck
from codepulse.issues.checks.hotspot import ComplexityHotspotCheck

ALL_CHECKS: list[type[BaseCheck]] = [
    LowDensityCheck,
    ComplexityHotspotCheck,
    DomainCoverageCheck,
    CoreRatioCheck,
]

__all__ = [
    "ALL_CHECKS",
    "BaseCheck",
    "ComplexityHotspotCheck",
    "CoreRatioCheck",
    "DomainCoverageCheck",
    "LowDensityCheck",
]
