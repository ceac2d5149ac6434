from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, Relationship, SQLModel

from hkids.models.user import User

AGE_GROUPS = ("3-5", "6-8", "9-12")
FILE_TYPES = ("pdf", "images")


class Book(SQLModel, table=True):
    __tablename__ = "books"

    id: int | None = Field(default=None, primary_key=True)
    title: str
    description: str = Field(default="")
    age_group: str = Field(index=True)  # "3-5" | "6-8" | "9-12"
    category: str = Field(index=True)
    cover_image: str
    # Reading order; always reassign, never mutate in place
    pages: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    file_type: str = Field(default="images")  # "pdf" | "images"
    is_published: bool = Field(default=False, index=True)
    uploaded_by_id: int | None = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    uploaded_by: Optional[User] = Relationship()
