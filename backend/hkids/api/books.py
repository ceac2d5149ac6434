from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from hkids.api.deps import get_admin_user, get_catalog
from hkids.models.book import Book
from hkids.models.user import User
from hkids.services.catalog import CatalogService

router = APIRouter(prefix="/books", tags=["books"])

AgeGroup = Literal["3-5", "6-8", "9-12"]
FileType = Literal["pdf", "images"]


# --- Pydantic models ---


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


def _as_page_list(value):
    # A single page may be sent as a bare string
    if isinstance(value, str):
        return [value]
    return value


class CreateBookRequest(CamelModel):
    title: str
    description: str = ""
    age_group: AgeGroup
    category: str
    cover_image: str
    pages: list[str]
    file_type: FileType = "images"
    is_published: bool = False

    pages_as_list = field_validator("pages", mode="before")(_as_page_list)


class UpdateBookRequest(CamelModel):
    title: str | None = None
    description: str | None = None
    age_group: AgeGroup | None = None
    category: str | None = None
    cover_image: str | None = None
    pages: list[str] | None = None
    file_type: FileType | None = None
    is_published: bool | None = None

    pages_as_list = field_validator("pages", mode="before")(_as_page_list)


class PublishedBookResponse(CamelModel):
    id: int
    title: str
    description: str
    age_group: str
    category: str
    cover_image: str
    pages: list[str]


class UploaderResponse(CamelModel):
    id: int
    username: str
    email: str


class BookResponse(PublishedBookResponse):
    file_type: str
    is_published: bool
    uploaded_by: UploaderResponse | None
    created_at: datetime
    updated_at: datetime


class BookMutationResponse(BaseModel):
    message: str
    book: BookResponse


def _book_response(book: Book) -> BookResponse:
    return BookResponse.model_validate(book)


# --- Endpoints ---


@router.get("/published", response_model=list[PublishedBookResponse])
async def list_published_books(
    age_group: str | None = Query(default=None, alias="ageGroup"),
    category: str | None = Query(default=None),
    catalog: CatalogService = Depends(get_catalog),
):
    books = catalog.list_published(age_group=age_group, category=category)
    return [PublishedBookResponse.model_validate(book) for book in books]


@router.get("", response_model=list[BookResponse])
async def list_books(
    catalog: CatalogService = Depends(get_catalog),
    _admin: User = Depends(get_admin_user),
):
    return [_book_response(book) for book in catalog.list_all()]


@router.get("/{book_id}", response_model=BookResponse)
async def get_book(
    book_id: int,
    catalog: CatalogService = Depends(get_catalog),
    _admin: User = Depends(get_admin_user),
):
    return _book_response(catalog.get_by_id(book_id))


@router.post("", response_model=BookMutationResponse, status_code=201)
async def create_book(
    body: CreateBookRequest,
    catalog: CatalogService = Depends(get_catalog),
    admin: User = Depends(get_admin_user),
):
    book = catalog.create(admin, body.model_dump(exclude_unset=True))
    return BookMutationResponse(
        message="Book created successfully", book=_book_response(book)
    )


@router.put("/{book_id}", response_model=BookMutationResponse)
async def update_book(
    book_id: int,
    body: UpdateBookRequest,
    catalog: CatalogService = Depends(get_catalog),
    admin: User = Depends(get_admin_user),
):
    book = catalog.update(admin, book_id, body.model_dump(exclude_unset=True))
    return BookMutationResponse(
        message="Book updated successfully", book=_book_response(book)
    )


@router.delete("/{book_id}")
async def delete_book(
    book_id: int,
    catalog: CatalogService = Depends(get_catalog),
    admin: User = Depends(get_admin_user),
):
    catalog.delete(admin, book_id)
    return {"message": "Book deleted successfully"}
