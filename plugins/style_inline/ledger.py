import logging
import threading
from typing import Any, Dict, List, Set

logger = logging.getLogger(f"mkdocs.plugins.{__name__}")


class DeletionLedger:
    """Filenames to drop from a compilation's assets once HTML is written.

    Deletion is deferred to emit so the stylesheet stays readable while the
    HTML is rewritten. The ledger lives as long as the plugin instance; marks
    are kept per compilation and a flush only empties the entries of the
    compilation it is given, so concurrent builds and watch-mode rebuilds do
    not see each other's files.
    """

    def __init__(self):
        self._files: Dict[int, Set[str]] = {}
        self._lock = threading.Lock()

    def __contains__(self, filename: str) -> bool:
        with self._lock:
            return any(filename in files for files in self._files.values())

    def __len__(self) -> int:
        with self._lock:
            return sum(len(files) for files in self._files.values())

    def marked(self, compilation: Any) -> Set[str]:
        with self._lock:
            return set(self._files.get(id(compilation), ()))

    def mark(self, filename: str, compilation: Any) -> None:
        with self._lock:
            self._files.setdefault(id(compilation), set()).add(filename)

    def clear(self) -> None:
        with self._lock:
            self._files.clear()

    def flush(self, compilation: Any) -> List[str]:
        """Remove the files marked for `compilation` from its assets, then forget them.

        Files already gone are skipped. Returns the names actually removed.
        """
        with self._lock:
            files = self._files.pop(id(compilation), set())
            removed: List[str] = []
            for filename in sorted(files):
                if filename in compilation.assets:
                    del compilation.assets[filename]
                    removed.append(filename)
                else:
                    logger.debug("[style_inline] '%s' already removed from assets", filename)
        if removed:
            logger.debug("[style_inline] removed %s from assets", ", ".join(removed))
        return removed
