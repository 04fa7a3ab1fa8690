from tortoise import fields
from ...common.models import TimestampMixin


class AppSettingRecord(TimestampMixin):
    """Small out-of-band configuration replicated through the remote store."""

    key = fields.CharField(max_length=100, primary_key=True)
    value = fields.TextField()

    def __str__(self):
        return self.key

    class Meta:
        table = "app_settings"
