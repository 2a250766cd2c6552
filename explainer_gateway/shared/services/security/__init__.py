from .request_guard import RequestGuard, RequestMetadata

__all__ = ["RequestGuard", "RequestMetadata"]
