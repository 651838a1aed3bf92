import logging
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from config import Settings, settings
from database import BookStore, ConnectionSupervisor
from library import Library, LibraryError, ValidationError

logger = logging.getLogger(__name__)


# --- Modeller ---
class BookModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    title: str
    author: str
    category: str
    published_year: int = Field(alias="publishedYear")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")


class MessageModel(BaseModel):
    message: str


class HealthModel(BaseModel):
    status: str
    timestamp: str
    db_status: str = Field(alias="dbStatus")


# --- Bağımlılıklar ---
def get_library(request: Request) -> Library:
    return request.app.state.library


def _json_object(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


# --- Rotalar ---
router = APIRouter(prefix="/api/books", tags=["books"])


@router.get("", response_model=List[BookModel])
def list_books(library: Library = Depends(get_library)):
    """All books, newest first."""
    return [BookModel(**book.to_dict()) for book in library.list_books()]


@router.post("", response_model=BookModel, status_code=201)
def create_book(payload: Any = Body(None), library: Library = Depends(get_library)):
    logger.debug("Request Body: %s", payload)
    book = library.add_book(_json_object(payload))
    return BookModel(**book.to_dict())


@router.get("/{book_id}", response_model=BookModel)
def get_book(book_id: str, library: Library = Depends(get_library)):
    return BookModel(**library.find_book(book_id).to_dict())


@router.put("/{book_id}", response_model=BookModel)
def update_book(book_id: str, payload: Any = Body(None), library: Library = Depends(get_library)):
    """Partial update: only the supplied fields change."""
    logger.debug("Request Body: %s", payload)
    book = library.update_book(book_id, _json_object(payload))
    return BookModel(**book.to_dict())


@router.delete("/{book_id}", response_model=MessageModel)
def delete_book(book_id: str, library: Library = Depends(get_library)):
    library.remove_book(book_id)
    return {"message": "Book deleted successfully"}


# --- Uygulama ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    # MONGODB_URI yoksa ConfigurationError burada fırlatılır ve başlatma durur
    supervisor = app.state.supervisor or ConnectionSupervisor(app.state.settings)
    app.state.supervisor = supervisor
    app.state.library = Library(BookStore(supervisor))
    await supervisor.start()
    try:
        yield
    finally:
        await supervisor.stop()


def create_app(config: Optional[Settings] = None, supervisor: Optional[ConnectionSupervisor] = None) -> FastAPI:
    config = config or settings
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = FastAPI(title=config.app_name, version=config.app_version, lifespan=lifespan)
    app.state.settings = config
    app.state.supervisor = supervisor

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    # --- Hata İşleyicileri ---
    @app.exception_handler(LibraryError)
    async def library_error_handler(request: Request, exc: LibraryError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid request body", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Error details: %s", exc)
        error = "".join(traceback.format_exception(exc)) if config.is_development else "Internal server error"
        return JSONResponse(
            status_code=500,
            content={"message": str(exc) or "Something went wrong!", "error": error},
        )

    # --- Sağlık Kontrolü ---
    @app.get("/health", response_model=HealthModel)
    def health(request: Request):
        """Process status plus store connectivity."""
        current = request.app.state.supervisor
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "dbStatus": "connected" if current is not None and current.is_connected else "disconnected",
        }

    app.include_router(router)
    return app


app = create_app()
