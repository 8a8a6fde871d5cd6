"""
Tests for the Favorite Service

Tests cover toggling favorites with and without save counting, the
resolution of favorites against active ads, and the login redirect.
"""

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.favorite_service import FavoriteService
from utils.exceptions import RemoteCallError


@pytest.fixture
def service(facade, session):
    return FavoriteService(facade, session)


class TestToggle:
    """Tests for FavoriteService.toggle."""

    def test_anonymous_is_sent_to_login(self, service, ad_factory, facade):
        """Saving requires a session."""
        result = service.toggle(ad_factory())
        assert result.ok is False
        assert "login" in result.redirect
        assert facade.entities.Favorite.calls == []

    def test_add_creates_snapshot(self, service, facade, signed_in, ad_factory):
        """Saving stores the ad's title, cover and price."""
        ad = ad_factory(title="Violão", price=350, images=["https://files.test/v1.jpg", "v2"])

        result = service.toggle(ad)

        assert result.ok is True
        assert result.data is True
        assert result.message == "Adicionado aos favoritos"
        stored = list(facade.entities.Favorite.records.values())
        assert len(stored) == 1
        assert stored[0]["user_id"] == "user-1"
        assert stored[0]["ad_id"] == ad.id
        assert stored[0]["ad_title"] == "Violão"
        assert stored[0]["ad_image"] == "https://files.test/v1.jpg"
        assert stored[0]["ad_price"] == 350.0

    def test_second_toggle_removes(self, service, facade, signed_in, ad_factory):
        """Toggling twice leaves no favorite behind."""
        ad = ad_factory()
        service.toggle(ad)

        result = service.toggle(ad)

        assert result.data is False
        assert result.message == "Removido dos favoritos"
        assert facade.entities.Favorite.records == {}
        assert service.is_favorited(ad.id) is False

    def test_one_favorite_per_ad(self, service, facade, signed_in, ad_factory):
        """A user never holds two favorites of the same ad."""
        ad = ad_factory()
        for _ in range(3):
            service.toggle(ad)
        assert len(facade.entities.Favorite.records) == 1
        assert service.is_favorited(ad.id) is True

    def test_track_saves_counts_up_and_down(self, service, facade, signed_in, ad_record_factory, ad_factory):
        """On the ad page the saves counter follows the favorite."""
        record = facade.entities.Ad.seed(ad_record_factory(saves_count=2))[0]
        ad = ad_factory(**record)

        service.toggle(ad, track_saves=True)
        assert facade.entities.Ad.records[ad.id]["saves_count"] == 3

        service.toggle(ad, track_saves=True)
        assert facade.entities.Ad.records[ad.id]["saves_count"] == 2

    def test_saves_never_negative(self, service, facade, signed_in, ad_record_factory, ad_factory):
        """Removing a favorite from an ad at zero saves keeps it at zero."""
        record = facade.entities.Ad.seed(ad_record_factory(saves_count=0))[0]
        ad = ad_factory(**record)
        facade.entities.Favorite.seed({"user_id": "user-1", "ad_id": ad.id})

        service.toggle(ad, track_saves=True)

        assert facade.entities.Ad.records[ad.id]["saves_count"] == 0

    def test_failure(self, service, facade, signed_in, ad_factory):
        """Backend errors become a failed result."""
        facade.entities.Favorite.fail("create", RemoteCallError("down"))
        result = service.toggle(ad_factory())
        assert result.ok is False


class TestListFavoriteAds:
    """Tests for FavoriteService.list_favorite_ads."""

    def test_resolves_in_favorite_order(self, service, facade, signed_in, ad_record_factory):
        """Favorites map to active ads, keeping favorite order and dropping missing ones."""
        facade.entities.Ad.seed(
            ad_record_factory(id="a"),
            ad_record_factory(id="b"),
            ad_record_factory(id="sold", status="sold"),
        )
        facade.entities.Favorite.seed(
            {"user_id": "user-1", "ad_id": "b"},
            {"user_id": "user-1", "ad_id": "deleted"},
            {"user_id": "user-1", "ad_id": "sold"},
            {"user_id": "user-1", "ad_id": "a"},
            {"user_id": "user-2", "ad_id": "a"},
        )

        result = service.list_favorite_ads()

        assert [ad.id for ad in result.data] == ["b", "a"]

    def test_no_favorites_skips_ad_query(self, service, facade, signed_in):
        """Without favorites the ads are not fetched."""
        result = service.list_favorite_ads()
        assert result.data == []
        assert facade.entities.Ad.calls == []

    def test_anonymous_is_sent_to_login(self, service):
        """The favorites page requires a session."""
        assert service.list_favorite_ads().redirect
