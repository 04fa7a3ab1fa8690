from tortoise import fields
from ...common.models import TimestampMixin


class SessionRecord(TimestampMixin):
    id = fields.CharField(max_length=64, primary_key=True)
    location_id = fields.CharField(max_length=64, db_index=True)
    user_name = fields.CharField(max_length=255)
    start_date = fields.DatetimeField()
    end_date = fields.DatetimeField(null=True)
    items = fields.JSONField(default=list)  # list of InventoryItem dicts
    is_submitted = fields.BooleanField(default=False, db_index=True)

    def __str__(self):
        state = "submitted" if self.is_submitted else "draft"
        return f"Session {self.id} by {self.user_name} at {self.location_id} ({state})"

    class Meta:
        table = "sessions"


class OrderHistoryRecord(TimestampMixin):
    id = fields.CharField(max_length=140, primary_key=True, description="Pattern: <session_id>-<product_id>")
    session_id = fields.CharField(max_length=64, db_index=True)
    product_id = fields.CharField(max_length=64, db_index=True)
    location_id = fields.CharField(max_length=64, db_index=True)
    order_date = fields.DatetimeField(db_index=True)
    quantity_ordered = fields.IntField(null=True)
    suppliers = fields.JSONField(default=list)  # supplier display names
    category_ids = fields.JSONField(default=list)

    def __str__(self):
        return f"{self.product_id} x {self.quantity_ordered} for session {self.session_id}"

    class Meta:
        table = "order_history"
