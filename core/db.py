import asyncio
import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from typing import List

import sqlite_utils
from sqlite_utils.db import NotFoundError

from core.exceptions import ArticleNotFoundError, StorageError
from core.models import StoredArticle

logger = logging.getLogger(__name__)

TABLE = "articles"


class Storage(ABC):
    @abstractmethod
    async def put(self, article_id: str, record: StoredArticle): ...

    @abstractmethod
    async def get(self, article_id: str) -> StoredArticle: ...

    @abstractmethod
    async def list(self) -> List[StoredArticle]: ...

    @abstractmethod
    async def delete(self, article_id: str): ...


class ArticleStore(Storage):
    """
    SQLite-backed article store.
    Records are keyed by the URL-safe article id; blocking SQLite calls run in a worker thread.
    """

    def __init__(self, db_path: str = "articles.db"):
        self.db_path = db_path
        self._lock = threading.Lock()
        conn = sqlite3.connect(db_path, check_same_thread=False)
        self.db = sqlite_utils.Database(conn)
        self.init_db()
        logger.info(f"Article store ready: {db_path}")

    def init_db(self):
        self.db[TABLE].create({
            "id": str,
            "title": str,
            "url": str,
            "source": str,
            "content": str,
            "summary": str,
            "image_url": str,
            "published_date": str,
            "generated_script": str,
            "record": str,  # Full JSON document
        }, pk="id", if_not_exists=True)

    def _run(self, func, *args):
        def locked():
            with self._lock:
                return func(*args)
        return asyncio.to_thread(locked)

    def _put(self, article_id: str, record: StoredArticle):
        row = record.to_dict()
        row["id"] = article_id
        row["record"] = json.dumps(record.to_dict())
        self.db[TABLE].upsert(row, pk="id")

    def _get(self, article_id: str) -> StoredArticle:
        row = self.db[TABLE].get(article_id)
        return StoredArticle.from_dict(json.loads(row["record"]))

    def _list(self) -> List[StoredArticle]:
        return [StoredArticle.from_dict(json.loads(row["record"])) for row in self.db[TABLE].rows]

    def _delete(self, article_id: str) -> bool:
        try:
            self.db[TABLE].get(article_id)
        except NotFoundError:
            return False
        self.db[TABLE].delete(article_id)
        return True

    async def put(self, article_id: str, record: StoredArticle):
        try:
            await self._run(self._put, article_id, record)
        except Exception as e:
            logger.error(f"Error storing article {article_id}: {e}")
            raise StorageError(f"Failed to store article data: {e}") from e
        logger.debug(f"Article {article_id} stored")

    async def get(self, article_id: str) -> StoredArticle:
        try:
            return await self._run(self._get, article_id)
        except NotFoundError as e:
            logger.warning(f"Article {article_id} not found in storage")
            raise ArticleNotFoundError(article_id) from e
        except Exception as e:
            logger.error(f"Error retrieving article {article_id}: {e}")
            raise StorageError(f"Failed to retrieve article data: {e}") from e

    async def list(self) -> List[StoredArticle]:
        try:
            return await self._run(self._list)
        except Exception as e:
            logger.error(f"Error listing articles: {e}")
            raise StorageError(f"Failed to list articles: {e}") from e

    async def delete(self, article_id: str):
        try:
            deleted = await self._run(self._delete, article_id)
        except Exception as e:
            logger.error(f"Error deleting article {article_id}: {e}")
            raise StorageError(f"Failed to delete article data: {e}") from e
        if not deleted:
            logger.warning(f"Attempted to delete non-existent article {article_id}")

    def close(self):
        self.db.conn.close()
