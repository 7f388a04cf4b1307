"""
Catalog model, built-in product list, and the browse filters.
Pure functions only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from apps.storefront.utils.money import D, _q2, _to_decimal


CATEGORIES: Dict[str, str] = {
    "premium-meats": "Premium Meats",
    "ocean-delights": "Ocean Delights",
    "garden-fresh": "Garden Fresh",
}

DEFAULT_MAX_PRICE = D("1000")


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    category: str
    price: Decimal
    original_price: Optional[Decimal] = None
    description: str = ""
    ingredients: str = ""
    weight: str = ""
    shelf_life: str = ""
    rating: float = 0.0
    review_count: int = 0
    image: str = ""
    in_stock: bool = True
    featured: bool = False
    tags: List[str] = field(default_factory=list)

    @property
    def category_name(self) -> str:
        return CATEGORIES.get(self.category, self.category)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price": str(_q2(self.price)),
            "original_price": None if self.original_price is None else str(_q2(self.original_price)),
            "description": self.description,
            "ingredients": self.ingredients,
            "weight": self.weight,
            "shelf_life": self.shelf_life,
            "rating": self.rating,
            "review_count": self.review_count,
            "image": self.image,
            "in_stock": self.in_stock,
            "featured": self.featured,
            "tags": list(self.tags),
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Product":
        original = d.get("original_price")
        tags = d.get("tags") or []
        if isinstance(tags, str):
            tags = [t.strip() for t in tags.split(",") if t.strip()]
        return Product(
            id=str(d["id"]),
            name=str(d.get("name") or d["id"]),
            category=str(d.get("category") or ""),
            price=_to_decimal(d.get("price")),
            original_price=None if original in (None, "") else _to_decimal(original),
            description=str(d.get("description") or ""),
            ingredients=str(d.get("ingredients") or ""),
            weight=str(d.get("weight") or ""),
            shelf_life=str(d.get("shelf_life") or ""),
            rating=float(d.get("rating") or 0),
            review_count=int(d.get("review_count") or 0),
            image=str(d.get("image") or ""),
            in_stock=bool(d.get("in_stock", True)),
            featured=bool(d.get("featured", False)),
            tags=list(tags),
        )


def _p(id, name, category, price, original, description, ingredients, weight, shelf_life,
       rating, review_count, image, in_stock, featured, tags) -> Product:
    return Product(
        id=id, name=name, category=category, price=D(price), original_price=D(original),
        description=description, ingredients=ingredients, weight=weight, shelf_life=shelf_life,
        rating=rating, review_count=review_count, image=image, in_stock=in_stock,
        featured=featured, tags=tags,
    )


DEFAULT_PRODUCTS: List[Product] = [
    _p("meat-chicken-pickle", "Spicy Chicken Pickle", "premium-meats", "349", "399",
       "Tender chicken pieces marinated in authentic spices and preserved in premium oil.",
       "Chicken, Red Chilli, Turmeric, Mustard Oil, Traditional Spices", "250g", "12 months",
       4.8, 156, "chicken-pickle.jpg", True, True, ["spicy", "non-veg", "traditional"]),
    _p("meat-mutton-pickle", "Royal Mutton Pickle", "premium-meats", "599", "649",
       "Premium mutton cooked with royal spices and preserved in mustard oil.",
       "Mutton, Red Chilli, Garam Masala, Mustard Oil, Aromatic Spices", "250g", "12 months",
       4.9, 89, "mutton-pickle.jpg", True, True, ["premium", "non-veg", "royal"]),
    _p("seafood-prawn-pickle", "Coastal Prawn Pickle", "ocean-delights", "449", "499",
       "Fresh prawns from the coast, pickled with traditional coastal spices.",
       "Prawns, Coconut Oil, Curry Leaves, Coastal Spices, Tamarind", "200g", "6 months",
       4.7, 134, "prawn-pickle.jpg", True, False, ["coastal", "seafood", "tangy"]),
    _p("seafood-fish-pickle", "Traditional Fish Pickle", "ocean-delights", "399", "449",
       "Authentic fish pickle made with traditional recipe and fresh catch.",
       "Fish, Mustard Oil, Fenugreek, Traditional Spices, Vinegar", "200g", "8 months",
       4.6, 201, "fish-pickle.jpg", True, False, ["traditional", "seafood", "authentic"]),
    _p("veg-mango-pickle", "Classic Mango Pickle", "garden-fresh", "199", "229",
       "Traditional raw mango pickle with perfect blend of spices.",
       "Raw Mango, Mustard Oil, Red Chilli, Turmeric, Salt, Spices", "400g", "24 months",
       4.5, 342, "mango-pickle.jpg", True, True, ["classic", "vegetarian", "tangy"]),
    _p("veg-mixed-pickle", "Garden Fresh Mixed Pickle", "garden-fresh", "249", "279",
       "A delightful mix of seasonal vegetables pickled to perfection.",
       "Mixed Vegetables, Sesame Oil, Mustard Seeds, Spices, Salt", "350g", "18 months",
       4.4, 278, "mixed-pickle.jpg", True, False, ["mixed", "vegetarian", "healthy"]),
    _p("veg-lemon-pickle", "Zesty Lemon Pickle", "garden-fresh", "179", "199",
       "Fresh lemons pickled with aromatic spices for that perfect zing.",
       "Lemon, Rock Salt, Turmeric, Red Chilli, Mustard Oil", "300g", "15 months",
       4.3, 187, "lemon-pickle.jpg", True, False, ["zesty", "vegetarian", "citrus"]),
    _p("meat-beef-pickle", "Hearty Beef Pickle", "premium-meats", "529", "579",
       "Slow-cooked beef with rich spices and traditional preservation methods.",
       "Beef, Onions, Ginger-Garlic, Garam Masala, Mustard Oil", "250g", "12 months",
       4.7, 95, "beef-pickle.jpg", False, False, ["hearty", "non-veg", "rich"]),
]


def filter_products(
    products: Iterable[Product],
    *,
    categories: Optional[Iterable[str]] = None,
    max_price: Optional[Decimal] = DEFAULT_MAX_PRICE,
) -> List[Product]:
    wanted = set(categories or [])
    out = []
    for p in products:
        if wanted and p.category not in wanted:
            continue
        if max_price is not None and p.price > max_price:
            continue
        out.append(p)
    return out


def sort_products(products: Iterable[Product], sort_by: Optional[str] = "name") -> List[Product]:
    items = list(products)
    if sort_by == "name":
        return sorted(items, key=lambda p: p.name.lower())
    if sort_by == "price":
        return sorted(items, key=lambda p: p.price)
    if sort_by == "rating":
        return sorted(items, key=lambda p: p.rating, reverse=True)
    if sort_by == "popularity":
        return sorted(items, key=lambda p: p.review_count, reverse=True)
    return items


def category_summary(products: Iterable[Product]) -> List[Dict[str, Any]]:
    counts: Dict[str, int] = {k: 0 for k in CATEGORIES}
    for p in products:
        counts[p.category] = counts.get(p.category, 0) + 1
    return [
        {"id": key, "name": CATEGORIES.get(key, key), "product_count": n}
        for key, n in counts.items()
    ]
