from __future__ import annotations

from pydantic import ValidationError

from stockdash.schemas.market import Category
from stockdash.services.persistent_cache import PersistentCache, PersistentValue

CATEGORY_CACHE_KEY = "categories_cache_stocks"

DEFAULT_CATEGORIES = [
    Category(id="1", slug="dashboard", title="Dashboard", icon="Home", color="#3b82f6",
             description="Your personal stock overview."),
    Category(id="2", slug="portfolio", title="Portfolio", icon="Briefcase", color="#10b981",
             description="Manage your portfolios."),
    Category(id="3", slug="analysis", title="Analysis", icon="Sliders", color="#f97316",
             description="Tools for stock analysis."),
    Category(id="4", slug="stocks", title="Stocks", icon="Search", color="#8b5cf6",
             description="Search for a specific stock."),
]


class CategoryService:
    """Dashboard tab categories, kept in the persistent cache between restarts."""

    def __init__(self, cache: PersistentCache, ttl_minutes: float = 15) -> None:
        self._state: PersistentValue[list[dict]] = PersistentValue(cache, CATEGORY_CACHE_KEY, [], ttl_minutes)

    def _reset(self) -> list[Category]:
        self._state.set([c.model_dump() for c in DEFAULT_CATEGORIES])
        return [c.model_copy() for c in DEFAULT_CATEGORIES]

    def list_categories(self) -> list[Category]:
        rows = self._state.value
        if not rows:
            return self._reset()
        try:
            return [Category.model_validate(row) for row in rows]
        except (TypeError, ValidationError) as exc:
            print(f"[CACHE][category_cache_invalid] error={exc}", flush=True)
            return self._reset()

    def get(self, slug: str) -> Category | None:
        for category in self.list_categories():
            if category.slug == slug:
                return category
        return None
