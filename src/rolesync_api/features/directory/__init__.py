"""External group directory and thumbnail clients."""

from .client import GroupDirectoryClient
from .exceptions import DirectoryUnavailable
from .schemas import RankTier, TierMember
from .thumbnails import ThumbnailClient

__all__ = [
    "DirectoryUnavailable",
    "GroupDirectoryClient",
    "RankTier",
    "ThumbnailClient",
    "TierMember",
]
