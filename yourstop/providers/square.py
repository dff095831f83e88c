"""
Square Catalog data source for menus.

API Documentation: https://developer.squareup.com/reference/square/catalog-api
"""

from typing import Any

from loguru import logger

from yourstop.models import MenuCategory, MenuData, MenuItem
from yourstop.providers.base import BaseProvider

UNCATEGORIZED = "uncategorized"


class SquareProvider(BaseProvider):
    """Square catalog items grouped into menu categories."""

    SERVICE_ID = "square"

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    async def fetch_menu(self, restaurant_id: str) -> MenuData | None:
        params = {"types": "ITEM,CATEGORY", "location_id": restaurant_id}

        try:
            data = await self._get(
                "/catalog/list", params=params, cache_ttl=self.settings.ttl("menu")
            )
            return MenuData(
                restaurant_id=restaurant_id,
                categories=self._to_categories(data.get("objects", [])),
                source=self.SERVICE_ID,
            )

        except Exception as e:
            logger.warning(f"Square menu failed for {restaurant_id}: {e}")
            return None

    def _to_categories(self, objects: list[dict[str, Any]]) -> list[MenuCategory]:
        categories: dict[str, MenuCategory] = {}
        for obj in objects:
            if obj.get("type") == "CATEGORY":
                categories[obj["id"]] = MenuCategory(
                    id=obj["id"], name=obj.get("category_data", {}).get("name", "")
                )

        for obj in objects:
            if obj.get("type") != "ITEM":
                continue
            item_data = obj.get("item_data", {})
            category_id = item_data.get("category_id") or UNCATEGORIZED
            category = categories.setdefault(
                category_id, MenuCategory(id=category_id, name="Other")
            )
            category.items.append(
                MenuItem(
                    id=obj["id"],
                    name=item_data.get("name", ""),
                    description=item_data.get("description") or "",
                    price=self._price(item_data),
                )
            )

        return [category for category in categories.values() if category.items]

    @staticmethod
    def _price(item_data: dict[str, Any]) -> float:
        """First variation price, converted from minor units."""
        for variation in item_data.get("variations", []):
            money = variation.get("item_variation_data", {}).get("price_money")
            if money:
                return money.get("amount", 0) / 100
        return 0.0
