"""
Inventory storage backends.
The services depend only on InventoryStore; backends are swappable.
"""

from .interface import InventoryStore
from .memory import InMemoryInventoryStore

__all__ = ['InventoryStore', 'InMemoryInventoryStore']
