"""Cart domain models.

All prices are stored in cents (integer) to avoid floating point issues.
10.00 EUR = 1000 cents.

Carts are immutable values: every mutation returns a new Cart. Totals
and per-category counts are always derived by summing the lines, never
stored.
"""

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class ItemType(str, Enum):
    """Catalog category a cart line belongs to."""

    TICKET = "ticket"
    GUESTLIST = "guestlist"
    RESERVATION = "reservation"
    PROMOTION = "promotion"
    PRODUCT = "product"

    @property
    def category(self) -> str:
        """Plural key used in URL selection state ("tickets", ...)."""
        return f"{self.value}s"


class CartItem(BaseModel):
    """One priced variant of a catalog item, with a selected quantity."""

    id: str = Field(..., min_length=1)
    price_id: str = Field(..., min_length=1)
    type: ItemType
    name: str
    price_name: str | None = None
    unit_price_cents: int = Field(..., ge=0)
    quantity: int = Field(1, ge=1)
    is_nominative: bool = False
    max_persons: int | None = Field(None, ge=1)

    model_config = {"frozen": True}

    @property
    def key(self) -> tuple[str, str]:
        """Identity of the line within a cart."""
        return (self.id, self.price_id)

    @property
    def subtotal_cents(self) -> int:
        return self.unit_price_cents * self.quantity


class Cart(BaseModel):
    """Ordered set of cart lines for a single event."""

    items: tuple[CartItem, ...] = ()

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_unique_keys(self) -> "Cart":
        """No two lines may share (id, price_id)."""
        seen = set()
        for item in self.items:
            if item.key in seen:
                raise ValueError(
                    f"Duplicate cart line for item {item.id} price {item.price_id}"
                )
            seen.add(item.key)
        return self

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def find(self, item_id: str, price_id: str) -> CartItem | None:
        for item in self.items:
            if item.key == (item_id, price_id):
                return item
        return None

    def has_items(self) -> bool:
        """True iff at least one line with a positive quantity exists."""
        return any(item.quantity > 0 for item in self.items)

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    def quantity_by_type(self, item_type: ItemType) -> int:
        return sum(item.quantity for item in self.items if item.type == item_type)

    @property
    def subtotal_cents(self) -> int:
        return sum(item.subtotal_cents for item in self.items)

    @property
    def nominative_items(self) -> tuple[CartItem, ...]:
        return tuple(item for item in self.items if item.is_nominative)

    @property
    def has_nominative_items(self) -> bool:
        return any(item.is_nominative for item in self.items)

    @property
    def nominative_quantity(self) -> int:
        """Number of individually assignable units (slots)."""
        return sum(item.quantity for item in self.nominative_items)

    def quantities_by_category(self) -> dict[str, dict[str, int]]:
        """Per-category {price_id: quantity}, the shape used for URL state."""
        selection: dict[str, dict[str, int]] = {t.category: {} for t in ItemType}
        for item in self.items:
            bucket = selection[item.type.category]
            bucket[item.price_id] = bucket.get(item.price_id, 0) + item.quantity
        return selection

    # -------------------------------------------------------------------------
    # Mutations (return new carts)
    # -------------------------------------------------------------------------

    def add_item(self, item: CartItem) -> "Cart":
        """
        Insert a line, or add its quantity onto an existing (id, price_id).

        Callers that want to replace a category's selection must call
        clear_items_by_type first.
        """
        existing = self.find(item.id, item.price_id)
        if existing is None:
            return Cart(items=self.items + (item,))

        merged = existing.model_copy(update={"quantity": existing.quantity + item.quantity})
        return Cart(items=tuple(merged if i.key == item.key else i for i in self.items))

    def update_quantity(
        self,
        item_id: str,
        price_id: str,
        delta: int,
        max_quantity: int | None = None,
    ) -> "Cart":
        """
        Apply a quantity delta to a line.

        The result is clamped to [0, max_quantity]; reaching 0 removes the
        line. Unknown lines are ignored.
        """
        existing = self.find(item_id, price_id)
        if existing is None:
            return self

        new_quantity = max(0, existing.quantity + delta)
        if max_quantity is not None:
            new_quantity = min(new_quantity, max_quantity)

        if new_quantity == 0:
            return self.remove_item(item_id, price_id)

        updated = existing.model_copy(update={"quantity": new_quantity})
        return Cart(items=tuple(updated if i.key == existing.key else i for i in self.items))

    def remove_item(self, item_id: str, price_id: str) -> "Cart":
        return Cart(items=tuple(i for i in self.items if i.key != (item_id, price_id)))

    def clear_items_by_type(self, item_type: ItemType) -> "Cart":
        """Drop every line of one category."""
        return Cart(items=tuple(i for i in self.items if i.type != item_type))
