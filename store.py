import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, inspect
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_fixed

from models import Base, ViewStat

logger = logging.getLogger(__name__)

HOMEPAGE = "homepage"

# Backends that can increment-or-create in a single statement
_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class StoreError(Exception):
    """A storage failure; ``detail`` holds the backend's own message."""

    def __init__(self, detail):
        super().__init__(detail)
        self.detail = detail


class Store:
    """Owns the engine and every statement issued against ``view_stats``.

    One instance is opened per process with :meth:`init` and shared by all
    requests until :meth:`close`.
    """

    def __init__(self, engine):
        self.engine = engine
        self.SessionLocal = sessionmaker(autoflush=False, bind=engine)
        self.closed = False
        self.backend_version = _describe_backend(engine)

    @classmethod
    def init(cls, url, attempts=1, wait=0.0):
        """Open the store at ``url``, creating the table and the homepage row.

        Safe to call against an already initialized store. Failures are
        retried ``attempts`` times, ``wait`` seconds apart, and the last
        :class:`StoreError` is raised.
        """
        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_fixed(wait),
            retry=retry_if_exception_type(StoreError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(cls._open, url)

    @classmethod
    def _open(cls, url):
        try:
            engine = create_engine(url)
        except (SQLAlchemyError, ImportError) as exc:
            # ImportError: the URL names a driver that is not installed
            raise StoreError(str(exc)) from exc
        if engine.dialect.name not in _UPSERT_DIALECTS:
            engine.dispose()
            raise StoreError("unsupported database backend: %s" % engine.dialect.name)

        try:
            inspector = inspect(engine)
            if not inspector.has_table(ViewStat.__tablename__):
                logger.info("Creating table %s...", ViewStat.__tablename__)
                Base.metadata.create_all(bind=engine)
            else:
                logger.info("Table %s already exists.", ViewStat.__tablename__)
            store = cls(engine)
            store._seed(HOMEPAGE)
        except SQLAlchemyError as exc:
            engine.dispose()
            raise StoreError(str(exc)) from exc

        logger.info("Store ready (%s)", store.backend_version)
        return store

    def _seed(self, page):
        with self.SessionLocal() as db:
            if db.get(ViewStat, page) is None:
                db.add(ViewStat(page=page, count=0))
                db.commit()
                logger.info("Seeded view counter for %r", page)

    @contextmanager
    def _session(self):
        if self.closed:
            raise StoreError("store is closed")
        try:
            with self.SessionLocal() as db:
                yield db
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def increment_and_get(self, page):
        """Add one view to ``page`` and return its new count.

        A page without a row starts counting from 1.
        """
        if not page:
            raise ValueError("page must be a non-empty string")
        with self._session() as db:
            insert = _UPSERT_DIALECTS[self.engine.dialect.name]
            stmt = insert(ViewStat).values(page=page, count=1)
            db.execute(stmt.on_conflict_do_update(
                index_elements=[ViewStat.page],
                set_={"count": ViewStat.count + 1},
            ))
            count = db.query(ViewStat.count).filter(ViewStat.page == page).scalar()
            db.commit()
        return count

    def get(self, page):
        """Return the count stored for ``page``, 0 when it has never been seen."""
        with self._session() as db:
            count = db.query(ViewStat.count).filter(ViewStat.page == page).scalar()
        return count if count is not None else 0

    def close(self):
        if self.closed:
            return
        try:
            self.engine.dispose()
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        finally:
            self.closed = True
        logger.info("Store closed")


def _describe_backend(engine):
    # server_version_info is only populated once the dialect has connected
    info = engine.dialect.server_version_info
    if not info:
        return engine.dialect.name
    return "%s %s" % (engine.dialect.name, ".".join(str(part) for part in info))
