"""Generation analytics schemas (camelCase on the wire)."""
from datetime import datetime
from mvp_studio.schemas.common import CamelModel


class ToolUsage(CamelModel):
    tool: str
    count: int
    avg_confidence: float | None


class StageUsage(CamelModel):
    stage: str
    count: int
    avg_confidence: float | None


class DailyTrend(CamelModel):
    date: str
    count: int
    avg_confidence: float | None


class QualityMetrics(CamelModel):
    high_quality: int      # confidence > 0.8
    medium_quality: int    # 0.5 - 0.8
    low_quality: int       # < 0.5
    unscored: int


class KnowledgeMetrics(CamelModel):
    knowledge_backed_generations: int
    total_snippets: int
    average_snippets: float | None


class GenerationAnalytics(CamelModel):
    total_generations: int
    average_confidence_score: float | None
    success_rate: float | None  # share of generations that did not fall back
    top_tools: list[ToolUsage]
    top_stages: list[StageUsage]
    quality_metrics: QualityMetrics
    generation_trends: list[DailyTrend]
    knowledge_metrics: KnowledgeMetrics


class AnalyticsDateRange(CamelModel):
    start: datetime
    end: datetime


class AnalyticsResponse(CamelModel):
    success: bool = True
    analytics: GenerationAnalytics
    timeframe: str
    date_range: AnalyticsDateRange
