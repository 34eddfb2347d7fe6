"""Pydantic schemas for the link-directory configuration document.

The trust core stores the document as opaque JSON text; these schemas only
decide whether a submitted or stored document is acceptable. Validation is
strict (no type coercion) and unknown keys are preserved by the caller,
which stores the original JSON rather than a re-serialized model.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

ThemeMode = Literal["light", "dark", "system"]


class _NavModel(BaseModel):
    model_config = ConfigDict(strict=True, extra="allow")

    @model_validator(mode="before")
    @classmethod
    def _reject_explicit_nulls(cls, data: Any) -> Any:
        """Optional fields may be omitted but never sent as null."""
        if isinstance(data, dict):
            for name in cls.model_fields:
                if name in data and data[name] is None:
                    raise ValueError(f"{name} must not be null")
        return data


class NavLink(_NavModel):
    """A single link entry."""

    id: str
    name: str
    url: str
    desc: str | None = None
    tags: list[str] | None = None


class NavCategory(_NavModel):
    """A named, optionally ordered group of links."""

    id: str
    name: str
    group: str | None = None
    icon: str | None = None
    order: int | float | None = Field(None, description="Sort key; lower sorts first")
    items: list[NavLink]


class NavSite(_NavModel):
    """Site-wide presentation settings."""

    title: str
    sidebarTitle: str | None = None
    bannerTitle: str | None = None
    description: str | None = None
    defaultTheme: ThemeMode | None = None
    timeZone: str | None = None
    sidebarAvatarSrc: str | None = None
    deployedDomain: str | None = None
    faviconProxyBase: str | None = None
    adminPath: str | None = None
    groupOrder: list[str] | None = None


class NavConfig(_NavModel):
    """The configuration document guarded by the admin session."""

    site: NavSite
    categories: list[NavCategory]


def is_nav_config(value: Any) -> bool:
    """Return True if `value` is an acceptable configuration document."""
    if not isinstance(value, dict):
        return False
    try:
        NavConfig.model_validate(value)
    except ValidationError:
        return False
    return True


def _order_key(category: Any) -> float:
    order = category.get("order") if isinstance(category, dict) else None
    if isinstance(order, bool) or not isinstance(order, (int, float)):
        return 0
    return order


def sort_categories(config: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of `config` with categories ordered by their ``order`` field.

    Categories without an order sort as 0; the sort is stable.
    """
    categories = config.get("categories")
    if not isinstance(categories, list):
        return dict(config)
    return {**config, "categories": sorted(categories, key=_order_key)}
