"""
Tests for the Boost Service (Top Up page)

Tests cover page loading with lazy credit renewal, ownership checks,
activation, its rejections, and the rollback of the ad when the credit
write fails.
"""

import pytest
from unittest.mock import MagicMock
from datetime import timedelta
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.boost_service import BoostService, RENEWED_MESSAGE, ACTIVATED_MESSAGE
from utils.exceptions import RemoteCallError, RollbackError
from utils.helpers import to_iso, parse_timestamp
from tests.conftest import NOW


@pytest.fixture
def make_service(facade, session, clock, user_record_factory, ad_record_factory):
    """
    Build a BoostService with one signed-in user and one ad of theirs.

    Returns:
        callable: (user overrides, ad overrides) -> (service, ad id)
    """
    def _make(user=None, ad=None):
        facade.auth.sign_in(user_record_factory(**(user or {})))
        session.init()
        record = facade.entities.Ad.seed(ad_record_factory(seller_id="user-1", **(ad or {})))[0]
        return BoostService(facade, session, clock=clock), record["id"]

    return _make


class TestLoad:
    """Tests for BoostService.load."""

    def test_anonymous_is_sent_to_login(self, facade, session, clock):
        """Without a session the page redirects to login."""
        result = BoostService(facade, session, clock=clock).load("ad-1")
        assert result.ok is False
        assert "login" in result.redirect
        assert result.message == ""

    def test_new_user_is_initialized_silently(self, facade, make_service):
        """The first visit grants a credit without the renewal notice."""
        service, ad_id = make_service()

        result = service.load(ad_id)

        assert result.ok is True
        assert result.message == ""
        assert facade.auth.updates == [{"available_topups": 1, "last_topup_reset": to_iso(NOW)}]
        assert result.data.can_activate is True
        assert result.data.time_remaining == "Disponível agora"

    def test_cooling_user_past_window_is_renewed(self, facade, make_service):
        """A credit is renewed and announced once the window has passed."""
        service, ad_id = make_service(user={
            "available_topups": 0,
            "last_topup_reset": to_iso(NOW - timedelta(hours=25)),
        })

        result = service.load(ad_id)

        assert result.message == RENEWED_MESSAGE
        assert result.data.renewed is True
        assert result.data.entitlement.available_topups == 1
        assert facade.entities.User.records["user-1"]["available_topups"] == 1

    def test_cooling_user_sees_countdown(self, make_service):
        """Within the window the page shows the time left."""
        service, ad_id = make_service(user={
            "available_topups": 0,
            "last_topup_reset": to_iso(NOW - timedelta(hours=1)),
        })

        result = service.load(ad_id)

        assert result.data.can_activate is False
        assert result.data.time_remaining == "23h 0m 0s"

    def test_missing_ad_is_not_found(self, make_service):
        """An unknown ad renders the not-found view."""
        service, _ = make_service(user={"available_topups": 1})
        result = service.load("nope")
        assert result.not_found is True

    def test_other_sellers_ad_is_denied(self, facade, make_service, ad_record_factory):
        """Only the owner may open the Top Up page of an ad."""
        service, _ = make_service(user={"available_topups": 1})
        other = facade.entities.Ad.seed(ad_record_factory(seller_id="someone-else"))[0]

        result = service.load(other["id"])

        assert result.ok is False
        assert result.message == "Acesso negado"


class TestActivate:
    """Tests for BoostService.activate."""

    def test_activation_writes_ad_and_user(self, facade, make_service):
        """A ready user boosts a paused ad for 24 hours."""
        service, ad_id = make_service(
            user={"available_topups": 1, "last_topup_reset": to_iso(NOW - timedelta(days=3))},
            ad={"status": "paused"},
        )

        result = service.activate(ad_id)

        assert result.ok is True
        assert result.message == ACTIVATED_MESSAGE
        assert "AdDetails" in result.redirect
        stored = facade.entities.Ad.records[ad_id]
        assert stored["is_boosted"] is True
        assert stored["status"] == "active"
        assert stored["boost_package"] == "24h"
        assert parse_timestamp(stored["boost_expires_at"]) == NOW + timedelta(hours=24)
        user = facade.entities.User.records["user-1"]
        assert user["available_topups"] == 0
        assert parse_timestamp(user["last_topup_reset"]) == NOW
        assert result.data.boost_active(NOW)

    def test_new_user_first_boost(self, facade, make_service):
        """An uninitialized user is granted a credit and spends it in one write."""
        service, ad_id = make_service()

        result = service.activate(ad_id)

        assert result.ok is True
        assert facade.auth.updates == [{"available_topups": 0, "last_topup_reset": to_iso(NOW)}]
        assert service.session.user.available_topups == 0

    def test_cooling_user_past_window_can_boost(self, facade, make_service):
        """An elapsed cooldown is renewed on the spot and consumed."""
        service, ad_id = make_service(user={
            "available_topups": 0,
            "last_topup_reset": to_iso(NOW - timedelta(hours=25)),
        })

        result = service.activate(ad_id)

        assert result.ok is True
        assert facade.auth.updates == [{"available_topups": 0, "last_topup_reset": to_iso(NOW)}]

    @pytest.mark.parametrize("user", [
        {},
        {"available_topups": 0, "last_topup_reset": to_iso(NOW - timedelta(hours=25))},
    ])
    def test_already_boosted_ad_is_rejected_before_any_renewal(self, facade, make_service, user):
        """A boosted ad is refused without granting or renewing the user's credit."""
        service, ad_id = make_service(
            user=user,
            ad={"is_boosted": True, "boost_expires_at": to_iso(NOW + timedelta(hours=1))},
        )

        result = service.activate(ad_id)

        assert result.ok is False
        assert result.message == "Este anúncio já está em destaque!"
        assert facade.auth.updates == []
        assert facade.entities.Ad.writes("update") == []

    def test_cooling_user_is_rejected_without_writes(self, facade, make_service):
        """No credit means no mutation at all."""
        service, ad_id = make_service(user={
            "available_topups": 0,
            "last_topup_reset": to_iso(NOW - timedelta(hours=2)),
        })

        result = service.activate(ad_id)

        assert result.ok is False
        assert "Aguarde 24 horas" in result.message
        assert facade.entities.Ad.writes("update") == []
        assert facade.auth.updates == []

    def test_already_boosted_ad_is_rejected_without_writes(self, facade, make_service):
        """An ad with an unexpired boost cannot be boosted again."""
        service, ad_id = make_service(
            user={"available_topups": 1},
            ad={"is_boosted": True, "boost_expires_at": to_iso(NOW + timedelta(hours=1))},
        )

        result = service.activate(ad_id)

        assert result.ok is False
        assert result.message == "Este anúncio já está em destaque!"
        assert facade.entities.Ad.writes("update") == []
        assert facade.auth.updates == []

    def test_ad_write_failure_leaves_user_untouched(self, facade, make_service):
        """If boosting the ad fails the credit is not consumed."""
        service, ad_id = make_service(user={"available_topups": 1})
        facade.entities.Ad.fail("update", RemoteCallError("down", status_code=503))

        result = service.activate(ad_id)

        assert result.ok is False
        assert result.message == "Erro ao ativar Top Up"
        assert facade.auth.updates == []

    def test_user_write_failure_rolls_back_ad(self, facade, make_service, capture_logs):
        """If consuming the credit fails the ad gets its previous boost fields back."""
        service, ad_id = make_service(user={"available_topups": 1}, ad={"status": "paused"})
        facade.auth.fail("update_me", RemoteCallError("down", status_code=500))

        result = service.activate(ad_id)

        assert result.ok is False
        assert result.message == "Erro ao ativar Top Up"
        stored = facade.entities.Ad.records[ad_id]
        assert stored["is_boosted"] is False
        assert stored["boost_expires_at"] is None
        assert stored["boost_package"] is None
        assert stored["status"] == "paused"
        assert len(facade.entities.Ad.writes("update")) == 2
        assert any("rolled back" in r.getMessage() for r in capture_logs)

    def test_failed_rollback_is_logged(self, facade, make_service, capture_logs):
        """When the compensation fails too, the error is logged and nothing is raised."""
        service, ad_id = make_service(user={"available_topups": 1})
        facade.auth.fail("update_me", RemoteCallError("down"))
        facade.entities.Ad.update = MagicMock(side_effect=[{}, RemoteCallError("still down")])

        result = service.activate(ad_id)

        assert result.ok is False
        errors = [r.getMessage() for r in capture_logs if r.levelname == "ERROR"]
        assert any("Could not restore ad" in message for message in errors)
        failures = [r for r in capture_logs if r.exc_info and isinstance(r.exc_info[1], RollbackError)]
        assert len(failures) == 1

    def test_anonymous_is_sent_to_login(self, facade, session, clock):
        """Activation requires a session."""
        result = BoostService(facade, session, clock=clock).activate("ad-1")
        assert result.ok is False
        assert result.redirect


class TestCountdownAndStub:
    """Tests for countdown and buy_more."""

    def test_countdown_for_cooling_user(self, make_service):
        """The countdown is formatted from the last reset."""
        service, _ = make_service(user={
            "available_topups": 0,
            "last_topup_reset": to_iso(NOW - timedelta(hours=2, minutes=30)),
        })
        assert service.countdown() == "21h 30m 0s"

    def test_countdown_for_ready_user(self, make_service):
        """A ready user can boost now."""
        service, _ = make_service(user={"available_topups": 1, "last_topup_reset": to_iso(NOW)})
        assert service.countdown() == "Disponível agora"

    def test_buy_more_is_not_available(self, facade, session):
        """Paid Top Ups are a stub."""
        result = BoostService(facade, session).buy_more()
        assert result.ok is False
        assert result.message == "Em breve"
