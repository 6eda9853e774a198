"""Listing acquisition: fetch strategies, feed extraction and the run pipeline."""

from .base import BaseFetchStrategy, FeedPayload, NormalizedListing, Pagination, RawFeedItem
from .captcha import CaptchaGate, CaptchaState
from .dedupe import BUCKET_ORDER, Deduplicator
from .item_normalizer import ItemNormalizer
from .page_state import PageStateExtractor
from .pipeline import PipelineOrchestrator, ScrapeResult, ScrapeStats

__all__ = [
    "BaseFetchStrategy",
    "FeedPayload",
    "NormalizedListing",
    "Pagination",
    "RawFeedItem",
    "CaptchaGate",
    "CaptchaState",
    "BUCKET_ORDER",
    "Deduplicator",
    "ItemNormalizer",
    "PageStateExtractor",
    "PipelineOrchestrator",
    "ScrapeResult",
    "ScrapeStats",
]
