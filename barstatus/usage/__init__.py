from barstatus.usage.blocks import build_blocks, mark_active, select_active_block
from barstatus.usage.context import context_fill
from barstatus.usage.formatter import aggregate, compute_usage, default_snapshot, format_usage
from barstatus.usage.models import (
    PlanLimits,
    Sample,
    SessionBlock,
    TokenFieldNames,
    UsageConfig,
    UsageSnapshot,
)
from barstatus.usage.scanner import default_cutoff, scan_usage

__all__ = [
    "scan_usage",
    "aggregate",
    "context_fill",
    "compute_usage",
    "default_cutoff",
    "default_snapshot",
    "format_usage",
    "build_blocks",
    "mark_active",
    "select_active_block",
    "PlanLimits",
    "Sample",
    "SessionBlock",
    "TokenFieldNames",
    "UsageConfig",
    "UsageSnapshot",
]
