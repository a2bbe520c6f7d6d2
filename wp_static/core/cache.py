"""
Visited-URL cache shared by every fetch worker of a crawl.
"""

import threading


class VisitedCache:
    """Set of URLs already scheduled during one crawl.

    All scheduling decisions go through :meth:`try_claim`, which checks and
    inserts under one lock acquisition so that two workers discovering the
    same link cannot both schedule it.  Entries are never removed; memory
    grows with the number of distinct URLs seen.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._urls: dict[str, bool] = {}

    def try_claim(self, url: str) -> bool:
        """Record *url*; True only for the first caller."""
        with self._lock:
            if url in self._urls:
                return False
            self._urls[url] = True
            return True

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._urls

    def __len__(self) -> int:
        with self._lock:
            return len(self._urls)
