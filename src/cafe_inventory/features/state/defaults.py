"""Starter catalog used when a device has never synced and has no snapshot."""

from typing import Dict, List

from ..catalog.schemas import Category, Location, Product, ProductLocation, Supplier
from .schemas import Collection


def default_catalog() -> Dict[Collection, List]:
    return {
        Collection.LOCATIONS: [
            Location(id="1", name="Main Location", address="123 Main St"),
            Location(id="2", name="Second Location", address="456 Oak Ave"),
        ],
        Collection.CATEGORIES: [
            Category(id="1", name="Milks", color="#E3F2FD"),
            Category(id="2", name="Cafe", color="#FFF3E0"),
            Category(id="3", name="Food", color="#E8F5E8"),
            Category(id="4", name="Supplies", color="#FCE4EC"),
        ],
        Collection.SUPPLIERS: [
            Supplier(id="1", name="Costco"),
            Supplier(id="2", name="Sysco"),
            Supplier(id="3", name="Shoreline"),
            Supplier(id="4", name="Trader Joes"),
        ],
        Collection.PRODUCTS: [
            Product(
                id="1",
                name="Whole Milk",
                categories=["1", "2"],
                suppliers=["1"],
                requires_quantity=True,
                locations=[
                    ProductLocation(location_id="1", min_threshold=5),
                    ProductLocation(location_id="2", min_threshold=3),
                ],
            ),
            Product(
                id="2",
                name="Coffee Beans",
                categories=["2"],
                suppliers=["2"],
                requires_quantity=True,
                locations=[
                    ProductLocation(location_id="1", min_threshold=10),
                    ProductLocation(location_id="2", min_threshold=8),
                ],
            ),
            Product(
                id="3",
                name="Sugar Packets",
                categories=["4"],
                suppliers=["4"],
                requires_quantity=False,
                locations=[
                    ProductLocation(location_id="1"),
                    ProductLocation(location_id="2"),
                ],
            ),
        ],
    }
