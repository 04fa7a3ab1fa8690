import logging
import sys


class NamespaceFilter(logging.Filter):
    def __init__(self, allowed_namespaces=None):
        super().__init__()
        self.allowed_namespaces = allowed_namespaces if allowed_namespaces is not None else []

    def filter(self, record):
        if not self.allowed_namespaces:
            return True  # If no namespaces are specified, allow all records
        # Allow record if its name starts with any of the allowed namespaces
        return any(record.name.startswith(ns) for ns in self.allowed_namespaces)


log_formatter = logging.Formatter(
    fmt="%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

app_logger = logging.getLogger("cafe_inventory")
app_logger.setLevel(logging.INFO)

console_handler = logging.StreamHandler(sys.stdout)
console_handler.setFormatter(log_formatter)

# --- Namespace-based Filter (Optional) ---
# To only see reconciliation logs while debugging a sync problem:
#
# allowed_log_namespaces = ["cafe_inventory.features.sync"]
# console_handler.addFilter(NamespaceFilter(allowed_log_namespaces))
app_logger.addHandler(console_handler)

# Push/pull steps log at DEBUG; keep them visible while sync is the riskiest part.
logging.getLogger("cafe_inventory.features.sync").setLevel(logging.DEBUG)

# logging.getLogger("tortoise.db_client").setLevel(logging.DEBUG)  # prints SQL
