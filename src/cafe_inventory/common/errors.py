"""Error taxonomy shared by the state, counting and sync features.

Core operations raise these; the FastAPI app translates them into HTTP
responses and the reconciliation engine turns them into a status flag for
background triggers.
"""

from typing import Iterable, List


class InventoryError(Exception):
    """Base class for every error raised by the inventory core."""


class ConfigurationError(InventoryError):
    """A collaborator (remote store, notification sender) is not configured."""


class RemoteNotConfiguredError(ConfigurationError):
    def __init__(self, message: str = "Remote store not configured. Please set it up in Settings."):
        super().__init__(message)


class MissingNotificationConfigError(ConfigurationError):
    def __init__(self, message: str = "Email notifications not configured. Please configure them in Settings first."):
        super().__init__(message)


class ConnectivityError(InventoryError):
    """Network, auth or timeout failure talking to a remote collaborator."""


class NotificationFailedError(ConnectivityError):
    def __init__(self, message: str = "Failed to send the order email."):
        super().__init__(message)


class ValidationError(InventoryError):
    """Invalid input to a lifecycle or catalog operation. No state was mutated."""


class NoItemsToOrderError(ValidationError):
    def __init__(self, message: str = "No items marked for ordering"):
        super().__init__(message)


class NotFoundError(InventoryError):
    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class PartialSyncFailure(InventoryError):
    """One or more entity upserts failed during the push phase."""

    def __init__(self, failures: Iterable[str]):
        self.failures: List[str] = list(failures)
        preview = ", ".join(self.failures[:5])
        if len(self.failures) > 5:
            preview += f" (+{len(self.failures) - 5} more)"
        super().__init__(f"{len(self.failures)} local change(s) failed to push: {preview}")
