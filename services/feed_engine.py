"""
Ad Feed Engine

This module turns an unordered collection of ads plus a FilterSpec
into the ordered page shown on the Home and Search screens. Everything here is
a pure function of (ads, filters, now): no remote calls, no state.

Filtering is conjunctive, one pass per criterion:
community/status scope, text, category, location, price, age, boosted flag.
Sorting is stable, so ties keep their incoming relative order.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from config import settings
from config.catalog import STATUS_ACTIVE, TIME_FILTER_WINDOWS, SORT_LABELS, \
    SORT_RECENT, SORT_PRICE_ASC, SORT_PRICE_DESC, SORT_VIEWS
from data.models import Ad
from utils.helpers import utc_now, to_decimal

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class FilterSpec:
    """Filters, sort order and page requested by the user.

    Attributes:
        text_query: Case-insensitive substring of title or description; empty disables.
        category: Exact category id, or None for all.
        location: Case-insensitive substring of city or neighborhood, or None.
        price_range: Inclusive (min, max) price bounds.
        time_filter: One of 'all', '24h', '3d', '7d'.
        only_boosted: Keep only ads flagged as boosted.
        sort_by: One of 'recent', 'price_asc', 'price_desc', 'views'.
        community_id: Restrict to one community, or None for all.
        page: 1-based page number.
        page_size: Ads per page.
    """
    text_query: str = ""
    category: Optional[str] = None
    location: Optional[str] = None
    price_range: Tuple[Decimal, Decimal] = field(
        default_factory=lambda: (Decimal(settings.DEFAULT_PRICE_RANGE[0]),
                                 Decimal(settings.DEFAULT_PRICE_RANGE[1])))
    time_filter: str = "all"
    only_boosted: bool = False
    sort_by: str = SORT_RECENT
    community_id: Optional[str] = None
    page: int = 1
    page_size: int = settings.SEARCH_PAGE_SIZE

    def __post_init__(self):
        if self.time_filter not in TIME_FILTER_WINDOWS:
            raise ValueError(f"Unknown time filter: {self.time_filter}")
        if self.sort_by not in SORT_LABELS:
            raise ValueError(f"Unknown sort option: {self.sort_by}")
        if self.page < 1:
            raise ValueError(f"page must be a positive integer, got {self.page}")
        if self.page_size < 1:
            raise ValueError(f"page_size must be a positive integer, got {self.page_size}")

        low, high = (to_decimal(bound) for bound in self.price_range)
        if low is None or high is None:
            raise ValueError(f"price_range bounds must be numbers, got {self.price_range}")
        self.price_range = (low, high)


@dataclass
class FeedPage:
    """One page of the feed."""
    items: List[Ad]
    page: int
    page_size: int
    has_more: bool
    total: int                     # Size of the filtered set before pagination


def filter_ads(ads: Iterable[Ad], spec: FilterSpec, now: Optional[datetime] = None) -> List[Ad]:
    """
    Apply every active criterion of the spec, keeping the input order.

    Args:
        ads: The raw ads.
        spec: The filter specification.
        now: Reference time for the age filter (defaults to the current time).

    Returns:
        List[Ad]: Ads satisfying all criteria.
    """
    now = now or utc_now()

    result = [
        ad for ad in ads
        if ad.status == STATUS_ACTIVE
        and (not spec.community_id or ad.community_id == spec.community_id)
    ]

    if spec.text_query:
        query = spec.text_query.lower()
        result = [
            ad for ad in result
            if query in (ad.title or "").lower() or query in (ad.description or "").lower()
        ]

    if spec.category:
        result = [ad for ad in result if ad.category == spec.category]

    if spec.location:
        loc = spec.location.lower()
        result = [
            ad for ad in result
            if loc in (ad.location_city or "").lower()
            or loc in (ad.location_neighborhood or "").lower()
        ]

    low, high = spec.price_range
    result = [ad for ad in result if low <= ad.price <= high]

    window_hours = TIME_FILTER_WINDOWS[spec.time_filter]
    if window_hours is not None:
        cutoff = now - timedelta(hours=window_hours)
        result = [ad for ad in result if ad.created_date is not None and ad.created_date >= cutoff]

    # Only the flag is checked here; expiry is left to the boosted carousel.
    if spec.only_boosted:
        result = [ad for ad in result if ad.is_boosted]

    return result


def sort_ads(ads: Iterable[Ad], sort_by: str) -> List[Ad]:
    """
    Stable sort by the requested option.

    Args:
        ads: The ads to sort.
        sort_by: One of 'recent', 'price_asc', 'price_desc', 'views'.

    Returns:
        List[Ad]: A new, sorted list.
    """
    if sort_by == SORT_PRICE_ASC:
        return sorted(ads, key=lambda ad: ad.price)
    if sort_by == SORT_PRICE_DESC:
        return sorted(ads, key=lambda ad: ad.price, reverse=True)
    if sort_by == SORT_VIEWS:
        return sorted(ads, key=lambda ad: ad.views_count, reverse=True)
    if sort_by == SORT_RECENT:
        return sorted(ads, key=lambda ad: ad.created_date or _OLDEST, reverse=True)
    raise ValueError(f"Unknown sort option: {sort_by}")


def paginate(ads: List[Ad], page: int, page_size: int) -> FeedPage:
    """
    Slice one page out of an ordered list.

    has_more is true when the page came back full, so a full last page still
    reports more; the following request then returns an empty page.
    """
    start = (page - 1) * page_size
    items = ads[start:start + page_size]
    return FeedPage(
        items=items,
        page=page,
        page_size=page_size,
        has_more=len(items) == page_size,
        total=len(ads),
    )


def build_feed(ads: Iterable[Ad], spec: FilterSpec, now: Optional[datetime] = None) -> FeedPage:
    """
    Filter, sort and paginate ads for display.

    Args:
        ads: The raw ads.
        spec: Filters, sort order and page.
        now: Reference time (defaults to the current time).

    Returns:
        FeedPage: The requested page.
    """
    filtered = filter_ads(ads, spec, now=now)
    ordered = sort_ads(filtered, spec.sort_by)
    return paginate(ordered, spec.page, spec.page_size)


def boosted_carousel(ads: Iterable[Ad], community_id: Optional[str] = None,
                     now: Optional[datetime] = None) -> List[Ad]:
    """
    Select the ads currently featured in the "Destaques" carousel.

    Unlike the only_boosted feed filter, an ad whose boost_expires_at is at or
    before now is dropped here even if is_boosted is still set.

    Args:
        ads: The raw ads, in display order.
        community_id: Restrict to one community, or None for all.
        now: Reference time (defaults to the current time).

    Returns:
        List[Ad]: The featured ads, input order preserved.
    """
    now = now or utc_now()
    return [
        ad for ad in ads
        if ad.is_boosted
        and ad.status == STATUS_ACTIVE
        and (not community_id or ad.community_id == community_id)
        and ad.boost_active(now)
    ]
