from claude_usage.tracker.aggregator import UsageAggregator, fold, merge
from claude_usage.tracker.cache import CacheStats, ReadCache
from claude_usage.tracker.models import (
    ConversationFile,
    ConversationUsage,
    GlobalUsage,
    ProjectLookup,
    ProjectUsage,
    ReadWarning,
    TimeRange,
    UsageAggregate,
    UsageRecord,
)
from claude_usage.tracker.periods import DateRange, filter_by_range
from claude_usage.tracker.plans import (
    BUILTIN_PLANS,
    Plan,
    QuotaSnapshot,
    UsageStatus,
    assess_quota,
    classify_status,
    daily_usage_percent,
    get_plan,
    load_plans,
    window_usage_percent,
)
from claude_usage.tracker.predictive import BurnRatePrediction, elapsed_hours, predict
from claude_usage.tracker.reader import LogStoreReader, extract_record

__all__ = [
    "BUILTIN_PLANS",
    "BurnRatePrediction",
    "CacheStats",
    "ConversationFile",
    "ConversationUsage",
    "DateRange",
    "GlobalUsage",
    "LogStoreReader",
    "Plan",
    "ProjectLookup",
    "ProjectUsage",
    "QuotaSnapshot",
    "ReadCache",
    "ReadWarning",
    "TimeRange",
    "UsageAggregate",
    "UsageAggregator",
    "UsageRecord",
    "UsageStatus",
    "assess_quota",
    "classify_status",
    "daily_usage_percent",
    "elapsed_hours",
    "extract_record",
    "filter_by_range",
    "fold",
    "get_plan",
    "load_plans",
    "merge",
    "predict",
    "window_usage_percent",
]
