"""SQLAlchemy models for the DevBytes offline cache."""

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class CachedVideo(Base):
    """A playlist entry as stored in the offline cache.

    Rows are keyed by ``url``: it is the only field that is unique per video
    in the remote playlist, so re-inserting the same video replaces its row
    instead of adding another one.
    """

    __tablename__ = "cached_videos"

    url: Mapped[str] = mapped_column(String, primary_key=True)
    title: Mapped[str] = mapped_column(String)
    description: Mapped[str] = mapped_column(Text)
    updated: Mapped[str] = mapped_column(String)
    thumbnail: Mapped[str] = mapped_column(String)
    # Monotonic insert sequence; rows read back in the order they were last written
    position: Mapped[int] = mapped_column(Integer, default=0, index=True)

    def __repr__(self) -> str:
        return f"CachedVideo(url={self.url!r}, title={self.title!r})"
