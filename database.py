import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import ConnectionFailure, PyMongoError

from config import Settings, settings

logger = logging.getLogger(__name__)

DISCONNECTED = "disconnected"
CONNECTING = "connecting"
CONNECTED = "connected"

BOOKS_COLLECTION = "books"


class StoreUnavailableError(Exception):
    """Raised when the store is used while there is no live connection."""


class ConnectionSupervisor:
    """Keeps the MongoDB connection alive for the lifetime of the process.

    State moves disconnected -> connecting -> connected, and back to
    disconnected on any transport error. Every entry into disconnected
    schedules the next attempt ``reconnect_delay`` seconds later, with no retry
    limit. A missing connection string raises ConfigurationError from the
    constructor and is never retried.
    """

    def __init__(self, config: Optional[Settings] = None,
                 client_factory: Callable[..., Any] = MongoClient,
                 reconnect_delay: Optional[float] = None) -> None:
        self.config = config or settings
        self.uri = self.config.store_uri()
        self.reconnect_delay = self.config.reconnect_delay if reconnect_delay is None else reconnect_delay
        self.state = DISCONNECTED
        self._client_factory = client_factory
        self._client: Optional[Any] = None
        self._task: Optional[asyncio.Task] = None
        self._retry_at = 0.0

    @property
    def is_connected(self) -> bool:
        return self.state == CONNECTED

    @property
    def database(self):
        """Handle to the configured database; raises StoreUnavailableError when not connected."""
        client = self._client
        if self.state != CONNECTED or client is None:
            raise StoreUnavailableError("Database connection is not available")
        return client[self.config.mongodb_db_name]

    # ------------------------- Connection attempts ------------------------- #
    def connect(self) -> bool:
        """Make a single connection attempt. Returns True when connected."""
        self.state = CONNECTING
        logger.info("Attempting to connect to MongoDB...")
        client = None
        try:
            client = self._client_factory(
                self.uri,
                serverSelectionTimeoutMS=self.config.server_selection_timeout_ms,
                socketTimeoutMS=self.config.socket_timeout_ms,
                connectTimeoutMS=self.config.connect_timeout_ms,
            )
            client.admin.command("ping")
        except PyMongoError as e:
            logger.error("MongoDB connection error: %s", e)
            if client is not None:
                client.close()
            self._enter_disconnected()
            return False

        self._client = client
        self.state = CONNECTED
        logger.info("MongoDB connected successfully")
        return True

    def check(self) -> bool:
        """Ping the store; a failed ping marks the connection as lost."""
        client = self._client
        if client is None:
            self._enter_disconnected()
            return False
        try:
            client.admin.command("ping")
        except PyMongoError as e:
            logger.error("MongoDB connection error: %s", e)
            self.mark_disconnected()
            return False
        return True

    def mark_disconnected(self) -> None:
        """Record a transport error reported by a store operation."""
        if self.state == DISCONNECTED:
            return
        logger.warning("MongoDB disconnected")
        client, self._client = self._client, None
        if client is not None:
            client.close()
        self._enter_disconnected()

    def _enter_disconnected(self) -> None:
        self.state = DISCONNECTED
        self._retry_at = time.monotonic() + self.reconnect_delay
        logger.info("Retrying MongoDB connection in %.1f seconds", self.reconnect_delay)

    # ------------------------- Lifecycle ------------------------- #
    async def start(self) -> None:
        """Make the first attempt and schedule the recurring supervision task."""
        if self._task is not None:
            return
        if not self.is_connected:
            await asyncio.to_thread(self._supervise)
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        client, self._client = self._client, None
        if client is not None:
            client.close()
        self.state = DISCONNECTED
        logger.info("MongoDB supervisor stopped")

    async def _run(self) -> None:
        while True:
            if self.is_connected:
                await asyncio.sleep(self.reconnect_delay)
                if self.is_connected:
                    await asyncio.to_thread(self._supervise)
                continue
            # Beklerken bildirilen bir bağlantı kopması yeniden deneme zamanını ileri taşır
            wait = self._retry_at - time.monotonic()
            if wait > 0:
                await asyncio.sleep(wait)
                continue
            await asyncio.to_thread(self._supervise)

    def _supervise(self) -> None:
        """Heartbeat when connected, connection attempt otherwise."""
        try:
            if self.is_connected:
                self.check()
            else:
                self.connect()
        except Exception:
            logger.exception("MongoDB supervisor error")
            self.mark_disconnected()


class BookStore:
    """Thin mapping of book documents onto the ``books`` collection."""

    def __init__(self, supervisor: ConnectionSupervisor) -> None:
        self.supervisor = supervisor

    def find_all(self) -> List[Dict[str, Any]]:
        return self._call(lambda books: list(books.find().sort([("createdAt", DESCENDING), ("_id", DESCENDING)])))

    def find_by_id(self, book_id: str) -> Optional[Dict[str, Any]]:
        oid = _object_id(book_id)
        if oid is None:
            return None
        return self._call(lambda books: books.find_one({"_id": oid}))

    def insert(self, document: Dict[str, Any]) -> str:
        document = dict(document)
        result = self._call(lambda books: books.insert_one(document))
        return str(result.inserted_id)

    def update_by_id(self, book_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        oid = _object_id(book_id)
        if oid is None:
            return None
        return self._call(lambda books: books.find_one_and_update(
            {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
        ))

    def delete_by_id(self, book_id: str) -> Optional[Dict[str, Any]]:
        oid = _object_id(book_id)
        if oid is None:
            return None
        return self._call(lambda books: books.find_one_and_delete({"_id": oid}))

    def _call(self, operation: Callable[[Any], Any]) -> Any:
        books = self.supervisor.database[BOOKS_COLLECTION]
        try:
            return operation(books)
        except ConnectionFailure:
            self.supervisor.mark_disconnected()
            raise


def _object_id(book_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(book_id)
    except (InvalidId, TypeError):
        return None
