"""A small per-column page cache used while evaluating pushed-down predicates."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator


class PageType(Enum):
    DATA_PAGE = "data_page"
    INDEX_PAGE = "index_page"
    DICTIONARY_PAGE = "dictionary_page"
    DATA_PAGE_V2 = "data_page_v2"


@dataclass(frozen=True)
class Page:
    """A decompressed page of one column chunk."""

    page_type: PageType
    data: bytes
    num_values: int = 0

    @property
    def is_dictionary(self) -> bool:
        return self.page_type is PageType.DICTIONARY_PAGE


@dataclass
class _CachedPages:
    dictionary: tuple[int, Page] | None = None
    data: tuple[int, Page] | None = None


class PredicatePageCache:
    """Caches decompressed pages so a page read for a predicate is not decompressed again.

    Only columns used both by a predicate and by the projection need caching.
    Batches are read page by page, so one data page per column is enough; the
    dictionary page, which comes first, is kept alongside it. Pages are
    identified by their offset in the file, columns by their leaf index.
    """

    def __init__(self) -> None:
        self._pages: dict[int, _CachedPages] = {}
        self._lock = threading.Lock()

    def get_page(self, col_id: int, offset: int) -> Page | None:
        with self._lock:
            cached = self._pages.get(col_id)
            if cached is None:
                return None
            for slot in (cached.dictionary, cached.data):
                if slot is not None and slot[0] == offset:
                    return slot[1]
            return None

    def insert_page(self, col_id: int, offset: int, page: Page) -> None:
        """Store ``page``, replacing the column's cached page of the same kind."""
        with self._lock:
            cached = self._pages.setdefault(col_id, _CachedPages())
            if page.is_dictionary:
                cached.dictionary = (offset, page)
            else:
                cached.data = (offset, page)


class CachedPageReader:
    """Reads the pages of one column chunk, with access to the shared page cache.

    Pages currently come straight from the inner reader.
    """

    def __init__(self, inner: Iterable[Page], cache: PredicatePageCache, col_id: int) -> None:
        self._inner = iter(inner)
        self.cache = cache
        self.col_id = col_id

    def get_next_page(self) -> Page | None:
        """The next page, or None once the column chunk is exhausted."""
        return next(self._inner, None)

    def __iter__(self) -> Iterator[Page]:
        return self

    def __next__(self) -> Page:
        page = self.get_next_page()
        if page is None:
            raise StopIteration
        return page