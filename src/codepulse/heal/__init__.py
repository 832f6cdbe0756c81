"""Self-heal loop: fix candidates, their record store and the audit log.

Controller::

    from codepulse.heal import SelfHealController

Store::

    from codepulse.heal.store import SQLiteFixStore
"""

from codepulse.heal.audit import HealAuditLog
from codepulse.heal.controller import SelfHealController, estimate_confidence, project_stats
from codepulse.heal.store import FixStore, SQLiteFixStore

__all__ = [
    "SelfHealController",
    "estimate_confidence",
    "project_stats",
    "FixStore",
    "SQLiteFixStore",
    "HealAuditLog",
]
