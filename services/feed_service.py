"""
Feed Service Module

This module backs the Home and Search screens. It fetches active ads from the
backend, scoped to the user's community, and runs them through the Ad Feed
Engine. The home feed accumulates pages for infinite scrolling.
"""

from typing import Callable, List, Optional
from datetime import datetime

from config import settings
from config.catalog import STATUS_ACTIVE, SORT_RECENT
from data.models import Ad
from data.protocols import EntityAccessFacade
from services.feed_engine import FilterSpec, FeedPage, build_feed, boosted_carousel
from services.results import ActionResult
from services.session import Session
from utils.exceptions import BackendError
from utils.helpers import utc_now
from utils.logger import get_logger

logger = get_logger(__name__)

LOAD_ERROR_MESSAGE = "Erro ao carregar anúncios"


class FeedService:
    """Fetches ads and runs them through the feed engine."""

    def __init__(self, facade: EntityAccessFacade, session: Session,
                 clock: Callable[[], datetime] = utc_now):
        self.facade = facade
        self.session = session
        self.clock = clock

    def community_id(self) -> Optional[str]:
        user = self.session.user
        return user.current_community_id if user else None

    def fetch_active(self, category: Optional[str] = None,
                     community_id: Optional[str] = None) -> List[Ad]:
        """
        Fetch active ads, newest first.

        Raises:
            BackendError: If the backend call fails.
        """
        query = {"status": STATUS_ACTIVE}
        if category:
            query["category"] = category
        if community_id:
            query["community_id"] = community_id
        records = self.facade.entities.Ad.filter(query, "-created_date")
        return [Ad.from_record(r) for r in records]

    def search(self, spec: FilterSpec) -> ActionResult:
        """
        Run a search.

        Args:
            spec: Filters, sort and page.

        Returns:
            ActionResult: data is the FeedPage on success.
        """
        try:
            ads = self.fetch_active(community_id=spec.community_id)
        except BackendError as e:
            logger.error(f"Search failed: {e}")
            return ActionResult.failure(LOAD_ERROR_MESSAGE)

        page = build_feed(ads, spec, now=self.clock())
        logger.info(f"Search '{spec.text_query}' matched {page.total} ads")
        return ActionResult.success(data=page)

    def boosted(self) -> ActionResult:
        """
        Load the ads currently featured in the carousel.

        Returns:
            ActionResult: data is the list of featured ads.
        """
        try:
            records = self.facade.entities.Ad.filter(
                {"is_boosted": True, "status": STATUS_ACTIVE}, "-created_date")
        except BackendError as e:
            logger.error(f"Failed to load boosted ads: {e}")
            return ActionResult.failure(LOAD_ERROR_MESSAGE, data=[])

        ads = [Ad.from_record(r) for r in records]
        return ActionResult.success(data=boosted_carousel(ads, self.community_id(), now=self.clock()))


class HomeFeed:
    """Infinite-scroll state of the home screen."""

    def __init__(self, feed_service: FeedService, page_size: Optional[int] = None):
        self.feed_service = feed_service
        self.page_size = page_size or settings.HOME_PAGE_SIZE
        self.category: Optional[str] = None
        self.page = 1
        self.ads: List[Ad] = []
        self.has_more = True

    def _spec(self) -> FilterSpec:
        return FilterSpec(
            category=self.category,
            community_id=self.feed_service.community_id(),
            sort_by=SORT_RECENT,
            page=self.page,
            page_size=self.page_size,
        )

    def _merge(self, page: FeedPage) -> None:
        if self.page == 1:
            self.ads = list(page.items)
        else:
            seen = {ad.id for ad in self.ads}
            self.ads.extend(ad for ad in page.items if ad.id not in seen)
        self.has_more = page.has_more

    def load_page(self) -> ActionResult:
        """Load the current page and merge it into the accumulated list."""
        spec = self._spec()
        try:
            ads = self.feed_service.fetch_active(self.category, spec.community_id)
        except BackendError as e:
            logger.error(f"Failed to load home feed page {self.page}: {e}")
            return ActionResult.failure(LOAD_ERROR_MESSAGE)

        page = build_feed(ads, spec, now=self.feed_service.clock())
        self._merge(page)
        return ActionResult.success(data=page)

    def set_category(self, category: Optional[str]) -> ActionResult:
        """Switch category; the feed starts over from page 1."""
        self.category = category or None
        self.page = 1
        self.ads = []
        self.has_more = True
        return self.load_page()

    def load_more(self) -> ActionResult:
        """Advance to the next page while there is one; a failed fetch keeps the current page."""
        if not self.has_more:
            return ActionResult.success(data=None)
        self.page += 1
        result = self.load_page()
        if not result.ok:
            self.page -= 1
        return result

    def refresh(self) -> ActionResult:
        """
        Pull the newest ads and put the ones not shown yet at the top.

        Returns:
            ActionResult: data is the number of ads fetched.
        """
        spec = self._spec()
        spec.page = 1
        try:
            ads = self.feed_service.fetch_active(self.category, spec.community_id)
        except BackendError as e:
            logger.error(f"Home feed refresh failed: {e}")
            return ActionResult.failure("Erro ao atualizar")

        newest = build_feed(ads, spec, now=self.feed_service.clock()).items
        seen = {ad.id for ad in self.ads}
        fresh = [ad for ad in newest if ad.id not in seen]
        self.ads = fresh + self.ads

        message = f"{len(newest)} novos anúncios carregados" if newest else ""
        return ActionResult.success(message=message, data=len(newest))
