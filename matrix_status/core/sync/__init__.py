from .sync_manager import MatrixSyncManager, build_sync_filter

__all__ = ["MatrixSyncManager", "build_sync_filter"]
