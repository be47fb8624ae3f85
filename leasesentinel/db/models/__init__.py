from leasesentinel.db.models.sentinel import DispatchLog, Sentinel

__all__ = ["DispatchLog", "Sentinel"]
