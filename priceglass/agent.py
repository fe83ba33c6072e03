"""
Business orchestration for a user-initiated search.
Coordinates the search service, retry policy, best-deal selection and history.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from priceglass.errors import StorageError, ValidationError
from priceglass.logger import logger
from priceglass.models.pricing import (
    CrawlFailure,
    CrawlResult,
    CrawlSuccess,
    HistoryItem,
    SearchKind,
    StorePrice,
)
from priceglass.normalizers.pricing import product_hint_from_url, sort_by_lowest_price
from priceglass.services.search_service import SearchService, classify_query
from priceglass.stores import HistoryStore, SearchTermStore
from priceglass.utils.retry import RetryPolicy, run_with_retry

NO_RESULTS_ERROR = "No prices found for this product. Try a different search term."

ProgressCallback = Callable[[int], None]


@dataclass
class CompareOutcome:
    query: str
    kind: SearchKind
    result: CrawlResult
    ranked: List[StorePrice] = field(default_factory=list)
    history_item: Optional[HistoryItem] = None

    @property
    def best(self) -> Optional[StorePrice]:
        return self.ranked[0] if self.ranked else None


async def simulate_progress(on_progress: ProgressCallback, interval: float = 0.5,
                            step: int = 10, cap: int = 90):
    """Feedback-only progress: climbs to cap on a timer until cancelled."""
    value = 0
    while True:
        await asyncio.sleep(interval)
        if value < cap:
            value = min(cap, value + step)
            on_progress(value)


class CompareAgent:
    """
    Runs one search the way the front end expects it:
    validate, look up (retrying an empty first result), rank, record.
    """

    def __init__(self, search_service: SearchService, history: HistoryStore,
                 recent_terms: Optional[SearchTermStore] = None,
                 retry_policy: Optional[RetryPolicy] = None,
                 progress_interval: float = 0.5):
        self.search_service = search_service
        self.history = history
        self.recent_terms = recent_terms
        self.retry_policy = retry_policy or RetryPolicy.from_config()
        self.progress_interval = progress_interval
        self.searches_run = 0

    def _may_retry(self) -> bool:
        if not self.retry_policy.retry_on_empty:
            return False
        return not self.retry_policy.first_attempt_only or self.searches_run == 0

    async def search(self, query: str, on_progress: Optional[ProgressCallback] = None) -> CompareOutcome:
        """
        Raises:
            ValidationError: If the query is empty, before any network call
        """
        if not query or not query.strip():
            raise ValidationError("Please enter a product URL, name, or barcode")

        query = query.strip()
        kind = classify_query(query)
        may_retry = self._may_retry()

        ticker = None
        if on_progress is not None:
            on_progress(0)
            ticker = asyncio.create_task(simulate_progress(on_progress, self.progress_interval))

        try:
            result = await run_with_retry(
                lambda: self.search_service.compare(query),
                lambda r: may_retry and isinstance(r, CrawlSuccess) and r.is_empty,
                self.retry_policy,
                name=f"compare '{query}'",
            )
        finally:
            if ticker is not None:
                ticker.cancel()
                try:
                    await ticker
                except asyncio.CancelledError:
                    pass
                on_progress(100)
            self.searches_run += 1

        if isinstance(result, CrawlSuccess) and result.is_empty:
            result = CrawlFailure(error=NO_RESULTS_ERROR)

        ranked = sort_by_lowest_price(result.data) if isinstance(result, CrawlSuccess) else []
        outcome = CompareOutcome(query=query, kind=kind, result=result, ranked=ranked)
        outcome.history_item = await self._record(outcome)
        return outcome

    async def _record(self, outcome: CompareOutcome) -> Optional[HistoryItem]:
        if outcome.kind == SearchKind.NAME:
            product_name = outcome.query
        elif outcome.kind == SearchKind.URL:
            product_name = product_hint_from_url(outcome.query) or None
        else:
            product_name = None

        try:
            item = await self.history.add(outcome.query, outcome.kind, product_name, outcome.best)
            if self.recent_terms is not None:
                await self.recent_terms.add(outcome.query)
            return item
        except StorageError as e:
            logger.error(f"Failed to record search history: {e}")
            return None
