"""Models module for the cafe inventory app.

This module contains the common database models for the application.
It includes a TimestampMixin class that provides created_at and updated_at
fields for the remote tables, a utility function for generating KSUIDs
(K-Sortable Unique IDentifiers) used as entity ids, and the UTC clock every
timestamp in the dataset is taken from."""

import datetime

from tortoise import fields, models
from ksuid import ksuid


def generate_ksuid() -> str:
    """Generate a K-Sortable Unique IDentifier (KSUID).

    KSUIDs are time-ordered ids that are safe to create on several devices
    at once, which is what lets two cafés add products offline and merge
    them later without id collisions.

    Returns:
        str: A string representation of the generated KSUID.
    """
    return str(ksuid.Ksuid())


def utcnow() -> datetime.datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


class TimestampMixin(models.Model):
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        abstract = True
