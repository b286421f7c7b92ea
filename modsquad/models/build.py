from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from modsquad.db.base import Base
from modsquad.models.common import TimestampMixin, UUIDPrimaryKeyMixin


class Build(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "builds"

    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    car_make: Mapped[str] = mapped_column(String(100), nullable=False)
    car_model: Mapped[str] = mapped_column(String(100), nullable=False)
    car_year: Mapped[int] = mapped_column(Integer, nullable=False)

    user = relationship("User", back_populates="builds")
    images = relationship(
        "BuildImage",
        back_populates="build",
        cascade="all, delete-orphan",
        order_by="BuildImage.created_at",
    )
