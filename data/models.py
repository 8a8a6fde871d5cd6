"""
Data Models for the Marketplace Client

This module contains the record types exchanged with the backend service.
Each model converts from the backend's raw dictionaries (from_record) and
back to the partial dictionaries accepted by create/update calls (to_record).
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any

from config.catalog import STATUS_ACTIVE
from utils.helpers import parse_timestamp, to_iso, to_decimal


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class Ad:
    """A classified ad as stored by the backend."""
    id: str
    title: str = ""
    description: str = ""
    price: Decimal = Decimal("0")
    category: Optional[str] = None
    location_city: Optional[str] = None
    location_neighborhood: Optional[str] = None
    images: List[str] = field(default_factory=list)     # Ordered photo URLs, first is the cover
    seller_id: Optional[str] = None
    seller_name: Optional[str] = None
    seller_photo: Optional[str] = None
    status: str = STATUS_ACTIVE
    views_count: int = 0
    saves_count: int = 0
    chat_clicks: int = 0
    is_boosted: bool = False
    boost_expires_at: Optional[datetime] = None
    boost_package: Optional[str] = None
    community_id: Optional[str] = None
    created_date: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Ad":
        return cls(
            id=str(record.get("id", "")),
            title=record.get("title") or "",
            description=record.get("description") or "",
            price=to_decimal(record.get("price"), Decimal("0")),
            category=record.get("category"),
            location_city=record.get("location_city"),
            location_neighborhood=record.get("location_neighborhood"),
            images=list(record.get("images") or []),
            seller_id=record.get("seller_id"),
            seller_name=record.get("seller_name"),
            seller_photo=record.get("seller_photo"),
            status=record.get("status") or STATUS_ACTIVE,
            views_count=_int(record.get("views_count")),
            saves_count=_int(record.get("saves_count")),
            chat_clicks=_int(record.get("chat_clicks")),
            is_boosted=bool(record.get("is_boosted")),
            boost_expires_at=parse_timestamp(record.get("boost_expires_at")),
            boost_package=record.get("boost_package"),
            community_id=record.get("community_id"),
            created_date=parse_timestamp(record.get("created_date")),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "price": float(self.price),
            "category": self.category,
            "location_city": self.location_city,
            "location_neighborhood": self.location_neighborhood,
            "images": list(self.images),
            "seller_id": self.seller_id,
            "seller_name": self.seller_name,
            "seller_photo": self.seller_photo,
            "status": self.status,
            "views_count": self.views_count,
            "saves_count": self.saves_count,
            "chat_clicks": self.chat_clicks,
            "is_boosted": self.is_boosted,
            "boost_expires_at": to_iso(self.boost_expires_at),
            "boost_package": self.boost_package,
            "community_id": self.community_id,
        }

    @property
    def cover_image(self) -> Optional[str]:
        return self.images[0] if self.images else None

    def boost_active(self, now: datetime) -> bool:
        """True when the ad is boosted and the boost has not yet expired."""
        return bool(self.is_boosted and self.boost_expires_at and self.boost_expires_at > now)


@dataclass
class User:
    """The fields of a backend user record that the client consumes."""
    id: str
    full_name: str = ""
    email: str = ""
    profile_photo: Optional[str] = None
    current_community_id: Optional[str] = None
    communities: List[str] = field(default_factory=list)
    available_topups: Optional[int] = None      # None until the first Top Up visit
    last_topup_reset: Optional[datetime] = None
    city: Optional[str] = None
    neighborhood: Optional[str] = None
    bio: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "User":
        topups = record.get("available_topups")
        return cls(
            id=str(record.get("id", "")),
            full_name=record.get("full_name") or "",
            email=record.get("email") or "",
            profile_photo=record.get("profile_photo"),
            current_community_id=record.get("current_community_id"),
            communities=list(record.get("communities") or []),
            available_topups=None if topups is None else _int(topups),
            last_topup_reset=parse_timestamp(record.get("last_topup_reset")),
            city=record.get("city"),
            neighborhood=record.get("neighborhood"),
            bio=record.get("bio"),
            phone=record.get("phone"),
        )


@dataclass
class Favorite:
    """Denormalized snapshot of a saved ad, one per (user, ad) pair."""
    id: str
    user_id: str
    ad_id: str
    ad_title: Optional[str] = None
    ad_image: Optional[str] = None
    ad_price: Optional[Decimal] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Favorite":
        return cls(
            id=str(record.get("id", "")),
            user_id=str(record.get("user_id", "")),
            ad_id=str(record.get("ad_id", "")),
            ad_title=record.get("ad_title"),
            ad_image=record.get("ad_image"),
            ad_price=to_decimal(record.get("ad_price")),
        )

    @classmethod
    def snapshot(cls, user_id: str, ad: Ad) -> Dict[str, Any]:
        """Build the create payload for a favorite of the given ad."""
        return {
            "user_id": user_id,
            "ad_id": ad.id,
            "ad_title": ad.title,
            "ad_image": ad.cover_image,
            "ad_price": float(ad.price),
        }


@dataclass
class Conversation:
    """A buyer/seller thread about one ad."""
    id: str
    ad_id: str
    buyer_id: str
    seller_id: str
    ad_title: Optional[str] = None
    ad_image: Optional[str] = None
    ad_price: Optional[Decimal] = None
    buyer_name: Optional[str] = None
    buyer_photo: Optional[str] = None
    seller_name: Optional[str] = None
    seller_photo: Optional[str] = None
    last_message: str = ""
    last_message_at: Optional[datetime] = None
    unread_buyer: int = 0
    unread_seller: int = 0

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Conversation":
        return cls(
            id=str(record.get("id", "")),
            ad_id=str(record.get("ad_id", "")),
            buyer_id=str(record.get("buyer_id", "")),
            seller_id=str(record.get("seller_id", "")),
            ad_title=record.get("ad_title"),
            ad_image=record.get("ad_image"),
            ad_price=to_decimal(record.get("ad_price")),
            buyer_name=record.get("buyer_name"),
            buyer_photo=record.get("buyer_photo"),
            seller_name=record.get("seller_name"),
            seller_photo=record.get("seller_photo"),
            last_message=record.get("last_message") or "",
            last_message_at=parse_timestamp(record.get("last_message_at")),
            unread_buyer=_int(record.get("unread_buyer")),
            unread_seller=_int(record.get("unread_seller")),
        )

    def is_buyer(self, user_id: str) -> bool:
        return self.buyer_id == user_id

    def unread_for(self, user_id: str) -> int:
        """Unread counter of the given participant."""
        if self.buyer_id == user_id:
            return self.unread_buyer
        if self.seller_id == user_id:
            return self.unread_seller
        return 0

    def other_party_name(self, user_id: str) -> Optional[str]:
        return self.seller_name if self.buyer_id == user_id else self.buyer_name


@dataclass
class Message:
    """One entry of a conversation's append-only message log."""
    id: str
    conversation_id: str
    sender_id: str
    content: str = ""
    sender_name: Optional[str] = None
    image_url: Optional[str] = None
    created_date: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Message":
        return cls(
            id=str(record.get("id", "")),
            conversation_id=str(record.get("conversation_id", "")),
            sender_id=str(record.get("sender_id", "")),
            content=record.get("content") or "",
            sender_name=record.get("sender_name"),
            image_url=record.get("image_url"),
            created_date=parse_timestamp(record.get("created_date")),
        )


@dataclass
class Review:
    """A buyer's rating of a seller."""
    id: str
    seller_id: str
    rating: int = 0
    comment: Optional[str] = None
    reviewer_name: Optional[str] = None
    reviewer_photo: Optional[str] = None
    created_date: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Review":
        return cls(
            id=str(record.get("id", "")),
            seller_id=str(record.get("seller_id", "")),
            rating=_int(record.get("rating")),
            comment=record.get("comment"),
            reviewer_name=record.get("reviewer_name"),
            reviewer_photo=record.get("reviewer_photo"),
            created_date=parse_timestamp(record.get("created_date")),
        )


@dataclass
class Community:
    """A university, condo or neighborhood that scopes ads and users."""
    id: str
    name: str = ""
    city: Optional[str] = None
    is_active: bool = True

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Community":
        return cls(
            id=str(record.get("id", "")),
            name=record.get("name") or "",
            city=record.get("city"),
            is_active=bool(record.get("is_active", True)),
        )
