from pumpguard.services.container import ServiceContainer

__all__ = ["ServiceContainer"]
