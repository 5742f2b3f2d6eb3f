# pmtr/resolver.py
import concurrent.futures
import ipaddress
import logging
import socket
import threading
from typing import Optional

from pmtr.errors import ResolveError
from pmtr.schemas import Target

logger = logging.getLogger(__name__)


def resolve_forward(host: str) -> Target:
    """Resolve a hostname or IPv4 literal once, before probing starts."""
    try:
        addr = ipaddress.ip_address(host)
    except ValueError:
        addr = None
    if addr is not None:
        if addr.version != 4:
            raise ResolveError(f"IPv6 targets are not supported: {host}")
        return Target(address=str(addr), name=host)

    try:
        infos = socket.getaddrinfo(host, None, socket.AF_INET, socket.SOCK_RAW)
    except (socket.gaierror, UnicodeError) as e:
        raise ResolveError(f"Failed to resolve {host}: {e}") from e
    if not infos:
        raise ResolveError(f"No IPv4 address found for {host}")

    address = infos[0][4][0]
    logger.info("resolved %s -> %s", host, address)
    return Target(address=address, name=host)


class ReverseResolver:
    """
    Best-effort, cached reverse DNS.

    lookup() never blocks: it returns what is already cached (or None) and
    starts a background gethostbyaddr for addresses it has not seen yet.
    Failed lookups are cached as None so they are not retried.
    """

    def __init__(self, enabled: bool = True, max_workers: int = 4):
        self.enabled = enabled
        self._cache: dict[str, Optional[str]] = {}
        self._pending: set[str] = set()
        self._futures: set[concurrent.futures.Future] = set()
        self._lock = threading.Lock()
        self._pool = None
        if enabled:
            self._pool = concurrent.futures.ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="rdns")

    def lookup(self, address: str) -> Optional[str]:
        if not self.enabled:
            return None
        with self._lock:
            if address in self._cache:
                return self._cache[address]
            if address in self._pending:
                return None
            self._pending.add(address)
            fut = self._pool.submit(self._resolve, address)
            self._futures.add(fut)
        fut.add_done_callback(self._forget)
        return None

    def _forget(self, fut) -> None:
        with self._lock:
            self._futures.discard(fut)

    def _resolve(self, address: str) -> None:
        try:
            name = socket.gethostbyaddr(address)[0]
        except (OSError, UnicodeError) as e:
            logger.debug("reverse lookup failed for %s: %s", address, e)
            name = None
        if name == address:
            name = None
        with self._lock:
            self._cache[address] = name
            self._pending.discard(address)

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until outstanding lookups finish, at most `timeout` seconds."""
        with self._lock:
            futures = list(self._futures)
        if futures:
            concurrent.futures.wait(futures, timeout=timeout)

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=False, cancel_futures=True)
