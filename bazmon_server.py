import functools
import os
import signal
import threading
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from core.logger import get_logger
from core.config import ConfigError, Settings, load_settings, read_config
from core.dedup import DedupCache
from core.models import ResultRow, SearchTerm
from core.storage import ResultStore, ResultStoreError
from core.terms import derive_query_id, monitor_terms, parse_terms
from fetchers import query_bazaar

logger = get_logger(__name__)

Fetcher = Callable[[str, Sequence[SearchTerm]], Optional[List[ResultRow]]]


class BazaarServer:
    """
    Bridges the in-game UI's request file and the bazaar web search.

    A watch thread reloads the request file whenever it changes and runs any
    new one-shot searches. A poll thread re-queries every monitored item each
    poll delay. Both write to their own CSV result file.
    """

    def __init__(self, settings: Settings, fetch: Optional[Fetcher] = None):
        self.settings = settings
        self.fetch: Fetcher = fetch or functools.partial(
            query_bazaar, base_url=settings.base_url
        )
        self.poll_delay = settings.poll_delay

        self.search_cache = DedupCache()
        self.monitor_cache = DedupCache()
        self.search_store = ResultStore(settings.search_results_path, "search results")
        self.monitor_store = ResultStore(settings.monitor_results_path, "monitor results")

        self._stop = threading.Event()
        self._fatal: Optional[ResultStoreError] = None
        self._threads: List[threading.Thread] = []
        self._last_signature: Optional[Tuple[int, int]] = None

    # -- request file ------------------------------------------------------

    def process_config_file(self) -> bool:
        """
        Reload the request file: refresh the poll delay, replace the monitor
        set, reset the search results and run searches not seen before.
        Returns False when the file could not be read; prior state is kept.
        """
        path = self.settings.monitor_path
        try:
            cfg = read_config(path, self.poll_delay)
        except ConfigError as e:
            logger.error("Keeping previous requests; %s", e)
            return False

        self.poll_delay = cfg.poll_delay

        if cfg.monitor is not None:
            self.monitor_cache.replace(cfg.monitor)
            logger.debug("Registered %d monitor items", len(cfg.monitor))

        self.search_store.reset()
        logger.debug("Processing %d search queries", len(cfg.queries))
        self.process_search_queries(cfg.queries.items())
        return True

    def process_search_queries(self, queries: Iterable[Tuple[str, str]]) -> int:
        """
        Run each search whose ID has not been queried yet, in order.
        Returns the number of searches sent to the bazaar.
        """
        sent = 0
        for query_id, raw in queries:
            if self.search_cache.get(query_id):
                logger.debug("queryID=%s duplicate query; skipping.", query_id)
                continue

            if sent and self._pause(self.settings.query_delay):
                break

            # Marked seen before querying; a failed request is not retried
            self.search_cache.put(query_id, raw)
            sent += 1

            terms = parse_terms(raw)
            logger.debug("queryID=%s search terms: %s", query_id, terms)

            rows = self._query(query_id, terms)
            if rows is None:
                continue

            written = self.search_store.append(rows)
            logger.info("queryID=%s wrote %d rows to search results", query_id, written)
        return sent

    # -- monitor items -----------------------------------------------------

    def process_monitor_items(self) -> int:
        """
        Re-query every monitored item and swap in its fresh rows.
        Returns the number of items whose rows were updated.
        """
        entries = self.monitor_cache.snapshot()
        logger.debug("Monitor cycle over %d items", len(entries))

        updated = 0
        for index, (item_name, raw) in enumerate(entries):
            if index and self._pause(self.settings.query_delay):
                break

            query_id = derive_query_id(item_name)
            terms = monitor_terms(item_name, raw)
            logger.debug("queryID=%s monitor terms for '%s': %s", query_id, item_name, terms)

            rows = self._query(query_id, terms)
            if rows is None:
                # Previous rows stay until a fetch succeeds
                continue

            self.monitor_store.delete_query(query_id)
            written = self.monitor_store.append(rows)
            updated += 1
            logger.info(
                "queryID=%s wrote %d rows to monitor results for '%s'",
                query_id, written, item_name,
            )
        return updated

    def _query(self, query_id: str, terms: Sequence[SearchTerm]) -> Optional[List[ResultRow]]:
        try:
            return self.fetch(query_id, terms)
        except Exception as e:
            logger.exception("queryID=%s unhandled error querying bazaar: %s", query_id, e)
            return None

    # -- loops -------------------------------------------------------------

    def _pause(self, seconds: float) -> bool:
        """Sleep between bazaar requests. True when the server is stopping."""
        if seconds > 0:
            return self._stop.wait(seconds)
        return self._stop.is_set()

    def _file_signature(self) -> Optional[Tuple[int, int]]:
        try:
            st = os.stat(self.settings.monitor_path)
        except OSError:
            return None
        return (st.st_mtime_ns, st.st_size)

    def _guarded(self, func: Callable[[], object]) -> None:
        try:
            func()
        except ResultStoreError as e:
            self._fail(e)
        except Exception as e:
            logger.exception("Unhandled error in %s: %s", func.__name__, e)

    def _fail(self, error: ResultStoreError) -> None:
        logger.critical("Result file failure, shutting down: %s", error)
        self._fatal = error
        self._stop.set()

    def check_config_file(self) -> bool:
        """Reload the request file if it changed since the last check."""
        signature = self._file_signature()
        if signature is None:
            if self._last_signature is not None:
                logger.error("Request file %s is missing", self.settings.monitor_path)
            self._last_signature = None
            return False
        if signature == self._last_signature:
            return False
        self._last_signature = signature
        logger.info("File modified: %s", self.settings.monitor_path)
        self.process_config_file()
        return True

    def _watch_loop(self) -> None:
        while not self._stop.wait(self.settings.watch_interval):
            self._guarded(self.check_config_file)

    def _poll_loop(self) -> None:
        while not self._stop.is_set():
            self._guarded(self.process_monitor_items)
            logger.debug("Sleeping %d seconds before next monitor cycle.", self.poll_delay)
            self._stop.wait(self.poll_delay)

    # -- lifecycle ---------------------------------------------------------

    @property
    def fatal_error(self) -> Optional[ResultStoreError]:
        return self._fatal

    def start(self) -> None:
        self.search_store.reset()
        self.monitor_store.reset()

        self._last_signature = self._file_signature()
        if self._last_signature is None:
            logger.error("Request file %s not found; waiting for it", self.settings.monitor_path)
        else:
            self.process_config_file()

        for name, target in (("config-watch", self._watch_loop), ("monitor-poll", self._poll_loop)):
            t = threading.Thread(target=target, name=name, daemon=True)
            t.start()
            self._threads.append(t)

    def stop(self) -> None:
        self._stop.set()

    def run(self) -> int:
        """Start the loops and block until interrupted or a fatal error."""
        if threading.current_thread() is threading.main_thread():
            signal.signal(signal.SIGTERM, lambda signum, frame: self.stop())

        try:
            self.start()
            while not self._stop.wait(1.0):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupt received")
            self.stop()

        logger.info("Stopping Bazaar Query Server")
        return 2 if self._fatal else 0

    def run_once(self) -> int:
        self.search_store.reset()
        self.monitor_store.reset()
        self.process_config_file()
        self.process_monitor_items()
        return 0


def main() -> int:
    try:
        settings = load_settings()
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    logger.info("Starting Bazaar Query Server (mode=%s)", settings.mode)
    logger.info("Using monitor file: %s", settings.monitor_path)
    logger.info("Using search results file: %s", settings.search_results_path)
    logger.info("Using monitor results file: %s", settings.monitor_results_path)

    server = BazaarServer(settings)
    if settings.mode == "once":
        return server.run_once()
    return server.run()


def cli() -> None:
    try:
        raise SystemExit(main())
    except Exception as e:
        logger.exception("Fatal server error: %s", e)
        raise SystemExit(2)


if __name__ == "__main__":
    cli()
