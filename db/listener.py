"""
db/listener.py
--------------
Realtime change subscriptions on top of PostgreSQL LISTEN/NOTIFY.

The `documents` trigger publishes "<namespace>|<collection>" on every write.
A ChangeListener turns those notifications into either a set of changed
(namespace, collection) pairs, or a lazy sequence of full-collection
snapshots that is re-fetched each time the collection changes.
"""

import select
from typing import Callable, Iterator, Optional

from db.connection import open_listen_connection
from db.init_db import CHANGE_CHANNEL
from utils.logger import get_logger

logger = get_logger(__name__)

Change = tuple[str, str]


def parse_payload(payload: str) -> Optional[Change]:
    """Split a notification payload into (namespace, collection)."""
    namespace, sep, collection = payload.rpartition("|")
    if not sep or not namespace or not collection:
        return None
    return namespace, collection


class ChangeListener:
    """
    A LISTEN session on the document change channel.

    Usage:
        with ChangeListener() as listener:
            for accounts in listener.snapshots(ns, "assetAccounts", fetch):
                ...
    """

    def __init__(self, connect: Callable = open_listen_connection, channel: str = CHANGE_CHANNEL):
        self._connect = connect
        self.channel = channel
        self._conn = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def start(self) -> None:
        """Open the connection and subscribe. Calling it twice is a no-op."""
        if self._conn is not None:
            return
        self._conn = self._connect()
        with self._conn.cursor() as cur:
            cur.execute(f"LISTEN {self.channel};")
        logger.info(f"Listening for document changes on '{self.channel}'")

    def close(self) -> None:
        """Unsubscribe and close the connection."""
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        try:
            with conn.cursor() as cur:
                cur.execute(f"UNLISTEN {self.channel};")
        finally:
            conn.close()
        logger.info(f"Stopped listening on '{self.channel}'")

    def __enter__(self) -> "ChangeListener":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def poll_changes(self, timeout: float = 0.0) -> set[Change]:
        """
        Wait up to `timeout` seconds for notifications and drain them.

        Returns:
            The distinct (namespace, collection) pairs that changed.
        """
        if self._conn is None:
            raise RuntimeError("Listener not started. Call start() first.")
        conn = self._conn
        if not conn.notifies:
            readable, _, _ = select.select([conn], [], [], timeout)
            if readable:
                conn.poll()
        changes: set[Change] = set()
        while conn.notifies:
            notify = conn.notifies.pop(0)
            change = parse_payload(notify.payload)
            if change is None:
                logger.warning(f"Ignoring malformed change payload: {notify.payload!r}")
                continue
            changes.add(change)
        return changes

    def snapshots(self, namespace: str, collection: str,
                  fetch: Callable[[], list], timeout: float = 5.0) -> Iterator[list]:
        """
        Lazily yield full snapshots of one collection.

        The first snapshot is yielded immediately; afterwards a new one is
        fetched each time a change to (namespace, collection) arrives. Every
        call returns a fresh sequence starting with a current snapshot. The
        sequence ends when the listener is closed.
        """
        self.start()
        yield fetch()
        while self._conn is not None:
            if (namespace, collection) in self.poll_changes(timeout):
                yield fetch()
