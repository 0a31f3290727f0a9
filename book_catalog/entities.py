from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base
from .identifiers import new_object_id


class BookRecord(Base):
    __tablename__ = "books"
    __table_args__ = (
        CheckConstraint("length(title) > 0", name="ck_books_title_not_empty"),
        CheckConstraint("length(author) > 0", name="ck_books_author_not_empty"),
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="ck_books_rating_range"),
    )

    id: Mapped[str] = mapped_column(String(24), primary_key=True, default=new_object_id)
    title: Mapped[str] = mapped_column(String, nullable=False)
    author: Mapped[str] = mapped_column(String, nullable=False)
    genre: Mapped[str | None] = mapped_column(String, nullable=True)
    published_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
