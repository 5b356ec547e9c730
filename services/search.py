"""
Content and user matching for search and recommendations.

Matching is a plain case-insensitive substring test over a paged scan of the
collection, newest first; a scan stops as soon as enough matches are found.
Anything smarter (full-text indexes, ranking) should replace
SubstringSearchEngine behind the same three methods.
"""
from itertools import islice
from typing import Callable, Iterable, Iterator, List, Optional

from database_adapter import PAGE_SIZE, iter_pages


def contains(text: Optional[str], needle: str) -> bool:
    """Case-insensitive substring test that tolerates missing text"""
    if not text:
        return False
    return needle.casefold() in text.casefold()


def tag_matches(tags: Optional[Iterable[str]], needle: str) -> bool:
    return any(contains(tag, needle) for tag in (tags or []))


class SubstringSearchEngine:
    """Scans contents and users for substring matches"""

    def __init__(self, db, page_size: int = PAGE_SIZE):
        self.db = db
        self.page_size = page_size

    def _contents(self) -> Iterator[dict]:
        return iter_pages(
            lambda: self.db.table("contents").select("*").order("created_at", desc=True).order("id"),
            self.page_size,
        )

    def _first(self, rows: Iterator[dict], matches: Callable[[dict], bool], limit: int) -> List[dict]:
        return list(islice((row for row in rows if matches(row)), limit))

    def search_content(self, query: str, limit: int = 10) -> List[dict]:
        """Contents whose title, description, or any tag contains the query"""
        return self._first(
            self._contents(),
            lambda item: contains(item.get("title"), query)
            or contains(item.get("description"), query)
            or tag_matches(item.get("tags"), query),
            limit,
        )

    def search_users(self, query: str, limit: int = 5) -> List[dict]:
        """Users whose name or email contains the query"""
        users = iter_pages(
            lambda: self.db.table("users").select("id, name, email, created_at").order("created_at").order("id"),
            self.page_size,
        )
        return self._first(
            users,
            lambda user: contains(user.get("name"), query) or contains(user.get("email"), query),
            limit,
        )

    def recommend(self, queries: List[str], limit: int = 5) -> List[dict]:
        """Contents whose title or any tag contains any of the given queries"""
        terms = [q for q in queries if q]
        if not terms:
            return []

        return self._first(
            self._contents(),
            lambda item: any(
                contains(item.get("title"), term) or tag_matches(item.get("tags"), term) for term in terms
            ),
            limit,
        )
