"""
Article analysis service.

Re-exports:
    - GroqClient: JSON-mode chat completions
    - ArticleClassifier: per-article summary / sentiment / bias / impact / tags
    - AnalysisWorkerPool: bounded background classification
    - StorylineClusterer: hourly storyline grouping and summaries
"""
from .classifier import ArticleClassifier, ClassifierStats
from .llm_client import GroqClient, UsageStats
from .storylines import ClusteringResult, StorylineClusterer
from .worker import AnalysisWorkerPool, PoolStats

__all__ = [
    "AnalysisWorkerPool",
    "ArticleClassifier",
    "ClassifierStats",
    "ClusteringResult",
    "GroqClient",
    "PoolStats",
    "StorylineClusterer",
    "UsageStats",
]
