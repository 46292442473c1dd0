"""Recovery planning: contexts, plans, templates, statistics."""

from steadfast.recovery.context import ErrorContext, create_error_context
from steadfast.recovery.plan import ActionType, RecoveryAction, RecoveryPlan, RecoveryResult
from steadfast.recovery.statistics import (
    ErrorPatternStat,
    RecoveryStatistics,
    StatisticsStore,
)
from steadfast.recovery.templates import (
    TemplateInput,
    TemplateRegistry,
    create_default_templates,
)
from steadfast.recovery.planner import ErrorRecoveryService

__all__ = [
    "ActionType",
    "ErrorContext",
    "ErrorPatternStat",
    "ErrorRecoveryService",
    "RecoveryAction",
    "RecoveryPlan",
    "RecoveryResult",
    "RecoveryStatistics",
    "StatisticsStore",
    "TemplateInput",
    "TemplateRegistry",
    "create_default_templates",
    "create_error_context",
]
