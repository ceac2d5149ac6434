from hkids.models.book import Book
from hkids.models.user import User

__all__ = [
    "Book",
    "User",
]
