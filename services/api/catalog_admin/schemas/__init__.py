"""Pydantic schemas for API errors and store records."""

from catalog_admin.schemas.errors import ErrorDetail, ErrorResponse
from catalog_admin.schemas.records import (
    AdPlacement,
    BestSellerCategory,
    LinkTile,
    NewsArticle,
    NewsCategory,
    ShopCategory,
    ShopItem,
    ShoppingSite,
    SlidingImage,
    StoreRecord,
    TrendingItem,
    UserRecord,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "AdPlacement",
    "BestSellerCategory",
    "LinkTile",
    "NewsArticle",
    "NewsCategory",
    "ShopCategory",
    "ShopItem",
    "ShoppingSite",
    "SlidingImage",
    "StoreRecord",
    "TrendingItem",
    "UserRecord",
]
