"""Record schemas for the content types stored in the tree.

Field aliases are the names the mobile app uses in the store; the store
schema is owned by the app, so unknown fields are kept as-is.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StoreRecord(BaseModel):
    """Base class for records written to the tree store."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_store(self) -> dict[str, Any]:
        """Serialize with store field names, dropping unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


# ============================================================
# Ordered-array collections
# ============================================================


class BestSellerCategory(StoreRecord):
    categories: str = Field(default="", alias="Categories")


class TrendingItem(StoreRecord):
    title: str = ""
    links: str = ""
    image: str = ""
    pricing: str = ""
    ratings: float = 0


class ShopItem(TrendingItem):
    no_of_ratings: str = ""


class ShopCategory(StoreRecord):
    title: str = ""
    image: str = ""
    items: list[ShopItem] = Field(default_factory=list)


class LinkTile(StoreRecord):
    """Image + link tile used by the home screen carousels."""

    title: str = ""
    image: str = ""
    links: str = ""


class SlidingImage(StoreRecord):
    image: str = ""
    links: str = ""
    title: str | None = None


# ============================================================
# Keyed-map collections
# ============================================================


class ShoppingSite(StoreRecord):
    name: str = ""
    click: str = ""
    images: str = ""


class NewsCategory(StoreRecord):
    id: str | None = None
    name: str = ""
    description: str = ""
    image_url: str = Field(default="", alias="imageUrl")


class NewsArticle(StoreRecord):
    id: str | None = None
    title: str = ""
    description: str = ""
    image_url: str = Field(default="", alias="imageUrl")
    category: str = ""
    is_sponsored: bool = Field(default=False, alias="isSponsored")
    timestamp: int = 0
    likes: int = 0
    comments: dict[str, Any] | None = None


class UserRecord(StoreRecord):
    id: str | None = None
    name: str = ""
    email: str = ""
    photo_url: str | None = Field(default=None, alias="photoUrl")


class AdPlacement(StoreRecord):
    id: str | None = None
    name: str = ""
    placement: str = ""
    unit_id: str = Field(default="", alias="unitId")
    enabled: bool = True

