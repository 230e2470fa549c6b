from infrastructure.storage.config_store import ConfigStore
from infrastructure.storage.history_store import HistoryStore

__all__ = ["ConfigStore", "HistoryStore"]
