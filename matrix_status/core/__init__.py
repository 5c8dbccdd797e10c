from .log import LogManager

logger = LogManager.get_logger()

from .config import ClientType, MatrixStatusConfig, load_config  # noqa: E402
from .indicator import RoomListObserver, StatusIndicator  # noqa: E402

__all__ = [
    "ClientType",
    "LogManager",
    "MatrixStatusConfig",
    "RoomListObserver",
    "StatusIndicator",
    "load_config",
    "logger",
]
