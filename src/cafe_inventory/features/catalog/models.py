"""Remote tables for the catalog: locations, categories, suppliers and products.

Ids are assigned by the client that created the entity, so every table uses a
string primary key rather than an auto-increment one. Many-to-many references
from a product are stored as JSON id lists, mirroring the local dataset.
"""

from tortoise import fields
from ...common.models import TimestampMixin

DEFAULT_CATEGORY_COLOR = "#E3F2FD"


class LocationRecord(TimestampMixin):
    id = fields.CharField(max_length=64, primary_key=True)
    name = fields.CharField(max_length=255)
    address = fields.TextField(null=True)

    def __str__(self):
        return self.name

    class Meta:
        table = "locations"


class CategoryRecord(TimestampMixin):
    id = fields.CharField(max_length=64, primary_key=True)
    name = fields.CharField(max_length=100)
    color = fields.CharField(max_length=32, default=DEFAULT_CATEGORY_COLOR)

    def __str__(self):
        return self.name

    class Meta:
        table = "categories"


class SupplierRecord(TimestampMixin):
    id = fields.CharField(max_length=64, primary_key=True)
    name = fields.CharField(max_length=255)

    def __str__(self):
        return self.name

    class Meta:
        table = "suppliers"


class ProductRecord(TimestampMixin):
    id = fields.CharField(max_length=64, primary_key=True)
    name = fields.CharField(max_length=255)
    categories = fields.JSONField(default=list)
    suppliers = fields.JSONField(default=list)
    requires_quantity = fields.BooleanField(default=False)
    locations = fields.JSONField(default=list)  # list of ProductLocation dicts

    def __str__(self):
        kind = "quantity" if self.requires_quantity else "checkbox"
        return f"{self.name} ({kind})"

    class Meta:
        table = "products"
