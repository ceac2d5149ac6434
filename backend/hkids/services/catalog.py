import logging
from collections.abc import Callable
from datetime import UTC, datetime

from sqlmodel import Session, col, select

from hkids.errors import NotFound, ValidationError
from hkids.models.book import AGE_GROUPS, FILE_TYPES, Book
from hkids.models.user import User
from hkids.services.media import MediaStore

logger = logging.getLogger(__name__)

# Client-facing names used in validation messages
_FIELD_NAMES = {
    "title": "title",
    "age_group": "ageGroup",
    "category": "category",
    "cover_image": "coverImage",
}


def _check_choice(field: str, value: str, choices: tuple[str, ...]) -> None:
    if value not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")


class CatalogService:
    """Book catalog operations over one store session.

    Superseded owned files are handed to ``schedule_cleanup`` only after the
    record change has been committed; the API passes a background task there.
    """

    def __init__(
        self,
        session: Session,
        media: MediaStore,
        schedule_cleanup: Callable[[list[str]], None] | None = None,
    ):
        self.session = session
        self.media = media
        self.schedule_cleanup = schedule_cleanup or media.remove

    def list_published(
        self, age_group: str | None = None, category: str | None = None
    ) -> list[Book]:
        query = select(Book).where(Book.is_published == True)  # noqa: E712
        if age_group:
            query = query.where(Book.age_group == age_group)
        if category:
            query = query.where(Book.category == category)
        query = query.order_by(col(Book.created_at).desc(), col(Book.id).desc())
        return list(self.session.exec(query).all())

    def list_all(self) -> list[Book]:
        query = select(Book).order_by(col(Book.created_at).desc(), col(Book.id).desc())
        return list(self.session.exec(query).all())

    def get_by_id(self, book_id: int) -> Book:
        book = self.session.get(Book, book_id)
        if not book:
            raise NotFound("Book not found")
        return book

    def create(self, admin: User, payload: dict) -> Book:
        for key, name in _FIELD_NAMES.items():
            value = payload.get(key)
            if not value or (isinstance(value, str) and not value.strip()):
                raise ValidationError(f"{name} is required")
        pages = payload.get("pages") or []
        if not pages:
            raise ValidationError("At least one page is required")
        _check_choice("ageGroup", payload["age_group"], AGE_GROUPS)
        file_type = payload.get("file_type") or "images"
        _check_choice("fileType", file_type, FILE_TYPES)

        (cover_image,) = self._store_images("coverImage", [payload["cover_image"]])
        try:
            stored_pages = self._store_images("pages", pages)
        except ValidationError:
            if cover_image != payload["cover_image"]:
                self.media.remove([cover_image])
            raise

        book = Book(
            title=payload["title"].strip(),
            description=(payload.get("description") or "").strip(),
            age_group=payload["age_group"],
            category=payload["category"].strip(),
            cover_image=cover_image,
            pages=stored_pages,
            file_type=file_type,
            is_published=bool(payload.get("is_published", False)),
            uploaded_by_id=admin.id,
        )
        self.session.add(book)
        self.session.commit()
        self.session.refresh(book)
        logger.info("Book %s (%r) created by %s", book.id, book.title, admin.username)
        return book

    def update(self, admin: User, book_id: int, changes: dict) -> Book:
        book = self.get_by_id(book_id)
        if changes.get("age_group"):
            _check_choice("ageGroup", changes["age_group"], AGE_GROUPS)
        if changes.get("file_type"):
            _check_choice("fileType", changes["file_type"], FILE_TYPES)

        cover = pages = None
        if changes.get("cover_image"):
            (cover,) = self._store_images("coverImage", [changes["cover_image"]])
        if changes.get("pages"):
            try:
                pages = self._store_images("pages", changes["pages"])
            except ValidationError:
                if cover and cover != changes["cover_image"]:
                    self.media.remove([cover])
                raise

        # Empty values are treated as "not provided" except for these two
        for key in ("description", "is_published"):
            if changes.get(key) is not None:
                setattr(book, key, changes[key])
        for key in ("title", "category"):
            if changes.get(key) and changes[key].strip():
                setattr(book, key, changes[key].strip())
        for key in ("age_group", "file_type"):
            if changes.get(key):
                setattr(book, key, changes[key])

        # References may move between cover and pages
        previous = [book.cover_image, *book.pages]
        if cover is not None:
            book.cover_image = cover
        if pages is not None:
            book.pages = pages
        kept = {book.cover_image, *book.pages}
        superseded = [ref for ref in dict.fromkeys(previous) if ref not in kept]

        book.updated_at = datetime.now(UTC)
        self.session.add(book)
        self.session.commit()
        self.session.refresh(book)
        logger.info("Book %s updated by %s", book.id, admin.username)

        superseded = self._unshared(superseded, book.id)
        if superseded:
            self.schedule_cleanup(superseded)
        return book

    def delete(self, admin: User, book_id: int) -> None:
        book = self.get_by_id(book_id)
        owned = list(dict.fromkeys([book.cover_image, *book.pages]))

        self.session.delete(book)
        self.session.commit()
        logger.info("Book %s deleted by %s", book_id, admin.username)

        owned = self._unshared(owned, book_id)
        if owned:
            self.schedule_cleanup(owned)

    def _store_images(self, field: str, references: list[str]) -> list[str]:
        """Store each reference, removing freshly written files if one fails."""
        stored: list[str] = []
        written: list[str] = []
        try:
            for reference in references:
                if not reference or not reference.strip():
                    raise ValidationError(f"{field} must not contain blank references")
                stored.append(self.media.store(reference, field))
                if reference.startswith("data:"):
                    written.append(stored[-1])
        except ValidationError:
            self.media.remove(written)
            raise
        return stored

    def _unshared(self, references: list[str], book_id: int) -> list[str]:
        """Drop references some other book still points at."""
        if not references:
            return []
        in_use: set[str] = set()
        for other in self.session.exec(select(Book).where(Book.id != book_id)).all():
            in_use.add(other.cover_image)
            in_use.update(other.pages)
        return [ref for ref in references if ref not in in_use]
