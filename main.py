"""
Marketplace Client Application

This is the main entry point for the hyperlocal marketplace client.
It signs in against the backend service, then browses the community feed,
searches ads, lists the featured carousel, activates Top Ups and watches the
unread messages badge from the command line.

Version: 1.0
"""

import sys
import argparse
import logging
import threading
from decimal import Decimal
from typing import Optional, List

from config import settings
from config.catalog import CATEGORIES, TIME_FILTER_WINDOWS, SORT_LABELS, SORT_RECENT
from data.models import Ad
from data.protocols import EntityAccessFacade
from utils.logger import get_logger, setup_file_logging
from utils.exceptions import MarketplaceError, ConfigurationError
from utils.helpers import format_price, truncate_text
from services.results import ActionResult
from services.session import Session
from services.polling import PollingTask
from services.feed_engine import FilterSpec
from services.feed_service import FeedService, HomeFeed
from services.ad_service import AdService
from services.favorite_service import FavoriteService
from services.chat_service import ChatService
from services.profile_service import ProfileService
from services.community_service import CommunityService
from services.report_service import ReportService
from services.boost_service import BoostService

# Set up logging
logger = get_logger(__name__)


class MarketplaceApp:
    """
    Main application class for the marketplace client.

    This class wires the backend facade, the session and the per-view
    services together. Every collaborator can be injected for testing.
    """

    def __init__(self, facade: Optional[EntityAccessFacade] = None,
                 session: Optional[Session] = None, validate: bool = True, **services):
        """
        Initialize the application.

        Args:
            facade: Backend facade; defaults to the shared BaaSClient.
            session: Session context; defaults to one built on facade.auth.
            validate: Run settings validation first.
            **services: Replacement services by attribute name (feed, boost, ...).
        """
        if validate:
            settings.validate_settings()

        if facade is None:
            from data.client import baas
            facade = baas
        self.facade = facade
        self.session = session or Session(facade.auth)

        self.feed = services.get("feed") or FeedService(facade, self.session)
        self.ads = services.get("ads") or AdService(facade, self.session)
        self.favorites = services.get("favorites") or FavoriteService(facade, self.session)
        self.chat = services.get("chat") or ChatService(facade, self.session)
        self.profile = services.get("profile") or ProfileService(facade, self.session)
        self.communities = services.get("communities") or CommunityService(facade, self.session)
        self.reports = services.get("reports") or ReportService(facade, self.session)
        self.boost = services.get("boost") or BoostService(facade, self.session)
        self.home = HomeFeed(self.feed)

    def start(self) -> None:
        """Load the session on app start."""
        user = self.session.init()
        if user:
            logger.info(f"Signed in as {user.full_name} ({user.email})")
        else:
            logger.info("Browsing anonymously")

    # =========================================================================
    # Commands
    # =========================================================================

    def show_home(self, category: Optional[str] = None) -> bool:
        result = self.home.set_category(category)
        return self._print_ads(result, self.home.ads)

    def show_search(self, spec: FilterSpec) -> bool:
        result = self.feed.search(spec)
        if not result.ok:
            return self._report(result)
        page = result.data
        print(f"{page.total} anúncios encontrados (página {page.page})")
        return self._print_ads(result, page.items)

    def show_boosted(self) -> bool:
        result = self.feed.boosted()
        return self._print_ads(result, result.data or [])

    def topup(self, ad_id: str, activate: bool = False) -> bool:
        """Show the Top Up state of an ad and optionally boost it."""
        result = self.boost.load(ad_id)
        if not result.ok:
            return self._report(result)
        if result.message:
            print(result.message)

        view = result.data
        print(f"Anúncio: {view.ad.title}")
        print(f"Top Ups disponíveis: {view.entitlement.available_topups}")
        print(f"Próximo Top Up: {view.time_remaining}")

        if not activate:
            return True
        activated = self.boost.activate(ad_id)
        return self._report(activated)

    def unread(self, watch: bool = False, stop_event: Optional[threading.Event] = None) -> bool:
        """
        Print the unread conversations badge, once or until interrupted.

        Args:
            watch: Keep polling until Ctrl+C (or until stop_event is set).
            stop_event: Ends the watch when set.
        """
        if not self.session.is_authenticated:
            print("Faça login para ver suas mensagens")
            return False

        if not watch:
            print(f"Conversas não lidas: {self.chat.unread_count()}")
            return True

        stop_event = stop_event or threading.Event()
        task = PollingTask("unread", settings.UNREAD_POLL_SECONDS,
                           lambda: print(f"Conversas não lidas: {self.chat.unread_count()}"))
        with task:
            try:
                stop_event.wait()
            except KeyboardInterrupt:
                logger.info("Stopped watching unread conversations")
        return True

    # =========================================================================
    # Output
    # =========================================================================

    def _report(self, result: ActionResult) -> bool:
        if result.redirect and not result.ok:
            print(f"Faça login para continuar: {result.redirect}")
        elif result.message:
            print(result.message)
        return result.ok

    def _print_ads(self, result: ActionResult, ads: List[Ad]) -> bool:
        if not result.ok:
            return self._report(result)
        if result.message:
            print(result.message)
        if not ads:
            print("Nenhum anúncio encontrado")
        for ad in ads:
            flag = "★ " if ad.is_boosted else ""
            where = ", ".join(p for p in (ad.location_neighborhood, ad.location_city) if p)
            print(f"{flag}{truncate_text(ad.title, 60)} - {format_price(ad.price)} [{where}] ({ad.id})")
        return True


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Marketplace Client')
    parser.add_argument('--log-file', type=str, default=None, help='Log file path')
    parser.add_argument('--log-level', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default='INFO', help='Logging level')

    commands = parser.add_subparsers(dest='command', required=True)

    home = commands.add_parser('home', help='Show the community feed')
    home.add_argument('--category', choices=sorted(CATEGORIES), default=None)

    search = commands.add_parser('search', help='Search ads')
    search.add_argument('--query', default='', help='Text to look for in title or description')
    search.add_argument('--category', choices=sorted(CATEGORIES), default=None)
    search.add_argument('--location', default=None, help='City or neighborhood')
    search.add_argument('--min-price', type=Decimal, default=Decimal(settings.DEFAULT_PRICE_RANGE[0]))
    search.add_argument('--max-price', type=Decimal, default=Decimal(settings.DEFAULT_PRICE_RANGE[1]))
    search.add_argument('--time', choices=list(TIME_FILTER_WINDOWS), default='all')
    search.add_argument('--boosted', action='store_true', help='Only boosted ads')
    search.add_argument('--sort', choices=list(SORT_LABELS), default=SORT_RECENT)
    search.add_argument('--page', type=int, default=1)

    commands.add_parser('boosted', help='Show the featured ads carousel')

    topup = commands.add_parser('topup', help='Show or activate the Top Up of an ad')
    topup.add_argument('ad_id')
    topup.add_argument('--activate', action='store_true', help='Boost the ad now')

    unread = commands.add_parser('unread', help='Show the unread conversations badge')
    unread.add_argument('--watch', action='store_true', help='Keep polling until Ctrl+C')

    return parser.parse_args(argv)


def run_command(app: MarketplaceApp, args) -> bool:
    """Dispatch the parsed command to the application."""
    if args.command == 'home':
        return app.show_home(args.category)
    if args.command == 'search':
        spec = FilterSpec(
            text_query=args.query,
            category=args.category,
            location=args.location,
            price_range=(args.min_price, args.max_price),
            time_filter=args.time,
            only_boosted=args.boosted,
            sort_by=args.sort,
            community_id=app.feed.community_id(),
            page=args.page,
        )
        return app.show_search(spec)
    if args.command == 'boosted':
        return app.show_boosted()
    if args.command == 'topup':
        return app.topup(args.ad_id, activate=args.activate)
    if args.command == 'unread':
        return app.unread(watch=args.watch)
    raise MarketplaceError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None, app: Optional[MarketplaceApp] = None):
    """Main entry point for the application."""
    # Parse command line arguments
    args = parse_arguments(argv)

    # Set up logging
    log_level = getattr(logging, args.log_level)
    setup_file_logging(args.log_file, log_level)

    logger.info(f"Starting marketplace client: {args.command}")

    try:
        app = app or MarketplaceApp()
        app.start()
        success = run_command(app, args)

        if success:
            exit_code = 0
        else:
            logger.warning(f"Command {args.command} did not complete")
            exit_code = 1

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        exit_code = 2
    except Exception as e:
        logger.error(f"Unhandled exception in marketplace client: {e}", exc_info=True)
        exit_code = 2

    logger.info(f"Marketplace client finished with exit code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
