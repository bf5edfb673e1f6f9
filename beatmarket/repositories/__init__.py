from .base import BaseRepository
from .beat_repo import BeatRepository
from .order_repo import OrderRepository
from .download_repo import DownloadRepository
from .user_repo import UserRepository

__all__ = [
    "BaseRepository",
    "BeatRepository",
    "OrderRepository",
    "DownloadRepository",
    "UserRepository",
]
