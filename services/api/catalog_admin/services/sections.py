"""Dashboard sections: one entry per content type managed by the admin panel.

Each section is bound to one collection path of the app's store schema and
says which engine handles it. Order here is the sidebar order.
"""

from dataclasses import dataclass
from enum import Enum

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
from catalog_admin.services.errors import NotFoundError
from catalog_admin.services.joins import BOOKMARKS_PATH, LIKES_PATH, POSTS_PATH
from catalog_admin.services.keyed import KeyedCollection
from catalog_admin.services.ordered import NestedItems, OrderedCollection
from catalog_admin.stores.tree import TreeStore


class SectionKind(str, Enum):
    KEYED = "keyed"  # mapping of generated key -> record
    ORDERED = "ordered"  # sequence, identity is the index
    NESTED = "nested"  # sequence of parents, each holding an item sequence
    RELATION = "relation"  # {userId: {postId: timestamp}} joined with users/news
    COMMENTS = "comments"  # news/{postId}/comments joined with users


@dataclass(frozen=True)
class SectionConfig:
    id: str
    label: str
    title: str
    kind: SectionKind
    path: str
    noun: str = "item"
    record_model: type[StoreRecord] = StoreRecord
    required: tuple[str, ...] = ()
    embed_key: bool = True
    stamp_timestamp: bool = False
    lookups: tuple[str, ...] = ()
    item_model: type[StoreRecord] = StoreRecord
    item_required: tuple[str, ...] = ()
    confirm: str = ""

    @property
    def editable(self) -> bool:
        return self.kind in (SectionKind.KEYED, SectionKind.ORDERED, SectionKind.NESTED)

    @property
    def confirm_message(self) -> str:
        return self.confirm or f"Are you sure you want to delete this {self.noun}?"

    def keyed(self, store: TreeStore) -> KeyedCollection:
        return KeyedCollection(
            store,
            self.path,
            record_model=self.record_model,
            required=self.required,
            embed_key=self.embed_key,
            stamp_timestamp=self.stamp_timestamp,
            label=self.noun,
        )

    def ordered(self, store: TreeStore) -> OrderedCollection:
        return OrderedCollection(
            store,
            self.path,
            record_model=self.record_model,
            required=self.required,
            append_defaults={"items": []} if self.kind == SectionKind.NESTED else None,
            label=self.noun,
        )

    def nested(self, store: TreeStore) -> NestedItems:
        return NestedItems(
            self.ordered(store),
            item_model=self.item_model,
            required=self.item_required,
            label="item",
        )

    def defaults(self, *, item: bool = False) -> dict:
        """Empty form values for an add form."""
        model = self.item_model if item else self.record_model
        data = model().to_store()
        data.pop("id", None)
        if self.kind == SectionKind.NESTED and not item:
            data.pop("items", None)
        return data

    def menu_item(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "title": self.title,
            "kind": self.kind.value,
            "path": self.path,
        }


def _tiles(id: str, label: str, path: str, noun: str) -> SectionConfig:
    return SectionConfig(
        id=id,
        label=label,
        title=label,
        kind=SectionKind.ORDERED,
        path=path,
        noun=noun,
        record_model=LinkTile,
        required=("title", "links"),
    )


SECTIONS: dict[str, SectionConfig] = {
    s.id: s
    for s in [
        SectionConfig(
            id="ads",
            label="Ads Settings",
            title="Ads Settings",
            kind=SectionKind.KEYED,
            path="Ads",
            noun="ad placement",
            record_model=AdPlacement,
            required=("name", "unitId"),
        ),
        SectionConfig(
            id="categories",
            label="Best Sellers",
            title="Best Sellers Categories",
            kind=SectionKind.ORDERED,
            path="BestSellersCategory",
            noun="category",
            record_model=BestSellerCategory,
            required=("Categories",),
        ),
        _tiles("featured-apps", "Featured Apps", "FeaturedApps", "featured app"),
        _tiles("food-delivery", "Food Delivery", "FoodDelivery", "food delivery option"),
        _tiles("home-items", "Home Items", "HomeItems", "home item"),
        _tiles("hotels", "Hotels", "Hotels", "hotel"),
        SectionConfig(
            id="news",
            label="News",
            title="News Management",
            kind=SectionKind.KEYED,
            path=POSTS_PATH,
            noun="news article",
            record_model=NewsArticle,
            required=("title", "description"),
            stamp_timestamp=True,
            lookups=("categories",),
        ),
        SectionConfig(
            id="news-categories",
            label="News Categories",
            title="News Categories",
            kind=SectionKind.KEYED,
            path="categories",
            noun="category",
            record_model=NewsCategory,
            required=("name", "description"),
            confirm=(
                "Are you sure you want to delete this category? "
                "This may affect news articles using this category."
            ),
        ),
        _tiles("recharge", "Recharge", "Recharge", "recharge option"),
        SectionConfig(
            id="shop-categories",
            label="Shop Categories",
            title="Shop Categories",
            kind=SectionKind.NESTED,
            path="ShopCategories",
            noun="category",
            record_model=ShopCategory,
            required=("title",),
            item_model=ShopItem,
            item_required=("title", "links"),
            confirm="Are you sure you want to delete this category and all its items?",
        ),
        SectionConfig(
            id="shopping",
            label="Shopping",
            title="Shopping Sites",
            kind=SectionKind.KEYED,
            path="Shopping",
            noun="shopping site",
            record_model=ShoppingSite,
            required=("name", "click"),
            embed_key=False,
        ),
        SectionConfig(
            id="sliding-images",
            label="Sliding Images",
            title="Sliding Images",
            kind=SectionKind.ORDERED,
            path="SlidingImages",
            noun="image",
            record_model=SlidingImage,
            required=("image",),
        ),
        _tiles("social-items", "Social Items", "SocialItems", "social item"),
        SectionConfig(
            id="trending",
            label="Trending Items",
            title="Trending Items",
            kind=SectionKind.ORDERED,
            path="TrendingItemsPage",
            noun="trending item",
            record_model=TrendingItem,
            required=("title", "links"),
        ),
        SectionConfig(
            id="users",
            label="Users",
            title="Users Management",
            kind=SectionKind.KEYED,
            path="users",
            noun="user",
            record_model=UserRecord,
            required=("name", "email"),
        ),
        SectionConfig(
            id="likes",
            label="Likes",
            title="Likes Management",
            kind=SectionKind.RELATION,
            path=LIKES_PATH,
            noun="like",
            confirm="Are you sure you want to remove this like?",
        ),
        SectionConfig(
            id="comments",
            label="Comments",
            title="Comments Management",
            kind=SectionKind.COMMENTS,
            path=POSTS_PATH,
            noun="comment",
        ),
        SectionConfig(
            id="bookmarks",
            label="Bookmarks",
            title="Bookmarks Management",
            kind=SectionKind.RELATION,
            path=BOOKMARKS_PATH,
            noun="bookmark",
            confirm="Are you sure you want to remove this bookmark?",
        ),
    ]
}

DEFAULT_SECTION = "ads"


def get_section(section_id: str | None) -> SectionConfig:
    """Look up a section; None selects the default one."""
    if section_id is None:
        return SECTIONS[DEFAULT_SECTION]
    try:
        return SECTIONS[section_id]
    except KeyError:
        raise NotFoundError(
            f"Unknown section: {section_id}",
            detail={"sections": list(SECTIONS)},
        ) from None
