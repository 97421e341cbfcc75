from .memory import InMemoryTraderStore

__all__ = ["InMemoryTraderStore"]
