from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from modsquad.db.base import Base
from modsquad.models.common import TimestampMixin, UUIDPrimaryKeyMixin


class BuildImage(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "images"

    build_id: Mapped[str] = mapped_column(ForeignKey("builds.id", ondelete="CASCADE"), nullable=False, index=True)
    url: Mapped[str] = mapped_column(String(500), nullable=False, unique=True)

    build = relationship("Build", back_populates="images")
