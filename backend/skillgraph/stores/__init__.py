"""Record store implementations."""

from .base import RecordStore
from .local import LocalRecordStore
from .remote import RemoteRecordStore

__all__ = ["LocalRecordStore", "RecordStore", "RemoteRecordStore"]
