"""Menu reference data consumed when an order is created."""

from decimal import Decimal

from pydantic import BaseModel, Field


class Menu(BaseModel):
    """Catalog menu as seen by the ordering workflow."""

    id: str
    title: str
    price_per_person: Decimal = Field(ge=0)
    min_persons: int = Field(default=1, ge=1)
    cooking_required: bool = True
    stock: int | None = Field(default=None, ge=0)

    @property
    def is_available(self) -> bool:
        """Check if the menu can still be ordered."""
        return self.stock is None or self.stock > 0


SAMPLE_MENUS: list[Menu] = [
    Menu(id="menu-1", title="Menu Gourmand", price_per_person=Decimal("45"), min_persons=10, stock=20),
    Menu(id="menu-2", title="Menu Vegan Délice", price_per_person=Decimal("38"), min_persons=8, stock=15),
    Menu(id="menu-3", title="Menu Bordeaux Tradition", price_per_person=Decimal("52"), min_persons=12, stock=10),
    Menu(
        id="menu-4",
        title="Menu Apéritif",
        price_per_person=Decimal("25"),
        min_persons=15,
        cooking_required=False,
        stock=30,
    ),
    Menu(id="menu-5", title="Menu Brunch", price_per_person=Decimal("35"), min_persons=10),
]
