"""Product model type definitions (read-only catalog view)."""

from typing import Any, TypedDict


class ProductVariant(TypedDict):
    """Size/color combination with its stock level."""

    size: str
    color: str
    stock: int


class Product(TypedDict, total=False):
    """Products table row as consumed by order pricing.

    ``name`` may be a plain string or a ``{"en": ..., "fr": ...}`` map.
    ``discount`` is either a percentage number or ``{"percentage": n}``.
    """

    id: str
    name: str | dict[str, str]
    price: float
    discount: float | dict[str, Any] | None
    variants: list[ProductVariant]
    images: list[str]
