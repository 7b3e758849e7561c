"""Remote playlist access for DevBytes sync."""

from .client import DevByteClient
from .models import NetworkVideo, NetworkVideoContainer

__all__ = ["DevByteClient", "NetworkVideo", "NetworkVideoContainer"]
