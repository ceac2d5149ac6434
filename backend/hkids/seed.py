"""Populate the store with an admin account and sample books.

Run with ``python -m hkids.seed [--reset]``.
"""

import argparse
import logging

from sqlalchemy import or_
from sqlmodel import Session, select

from hkids.auth import hash_password
from hkids.config import settings
from hkids.database import create_store_engine, init_db
from hkids.models.book import Book
from hkids.models.user import User

logger = logging.getLogger(__name__)

SAMPLE_ADMIN = {"username": "admin", "email": "admin@hkids.com", "password": "admin123"}

SAMPLE_BOOKS = [
    {
        "title": "The Little Red Hen",
        "description": "A classic tale about hard work and cooperation",
        "age_group": "3-5",
        "category": "Fairy Tales",
        "pages": 3,
        "is_published": True,
    },
    {
        "title": "Adventures in Space",
        "description": "Join Captain Star on an exciting space adventure",
        "age_group": "6-8",
        "category": "Adventure",
        "pages": 4,
        "is_published": True,
    },
    {
        "title": "The Magic Forest",
        "description": "Discover the secrets of the enchanted forest",
        "age_group": "3-5",
        "category": "Fantasy",
        "pages": 2,
        "is_published": True,
    },
    {
        "title": "Science Explorers",
        "description": "Learn about the wonders of science",
        "age_group": "9-12",
        "category": "Educational",
        "pages": 5,
        "is_published": True,
    },
    {
        "title": "Animal Friends",
        "description": "Meet friendly animals from around the world",
        "age_group": "3-5",
        "category": "Animals",
        "pages": 3,
        "is_published": False,
    },
]


def ensure_admin(session: Session, username: str, email: str, password: str) -> User:
    """Return the user with this username or email, creating an admin if missing."""
    admin = session.exec(
        select(User).where(or_(User.username == username, User.email == email.lower()))
    ).first()
    if admin:
        return admin
    admin = User(
        username=username,
        email=email.lower(),
        password_hash=hash_password(password),
        role="admin",
    )
    session.add(admin)
    session.commit()
    session.refresh(admin)
    logger.info("Created admin user %s <%s>", admin.username, admin.email)
    return admin


def seed_database(session: Session, reset: bool = False) -> list[Book]:
    if reset:
        for model in (Book, User):
            for row in session.exec(select(model)).all():
                session.delete(row)
        session.commit()
        logger.info("Cleared existing books and users")

    admin = ensure_admin(session, **SAMPLE_ADMIN)
    books = []
    for n, sample in enumerate(SAMPLE_BOOKS, start=1):
        page_count = sample["pages"]
        books.append(
            Book(
                title=sample["title"],
                description=sample["description"],
                age_group=sample["age_group"],
                category=sample["category"],
                cover_image=f"/uploads/placeholder-cover-{n}.jpg",
                pages=[f"/uploads/placeholder-page-{n}-{p}.jpg" for p in range(1, page_count + 1)],
                file_type="images",
                is_published=sample["is_published"],
                uploaded_by_id=admin.id,
            )
        )
    session.add_all(books)
    session.commit()
    logger.info("Created %d sample books", len(books))
    return books


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Seed the HKids database")
    parser.add_argument("--reset", action="store_true", help="delete existing users and books first")
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.log_level)
    engine = create_store_engine(settings.database_url)
    init_db(engine)
    with Session(engine) as session:
        seed_database(session, reset=args.reset)


if __name__ == "__main__":
    main()
