#!/usr/bin/env python3
"""
Curriculum file watcher.
Notices edits to the curriculum JSON while a session runs. The observer
thread only raises a flag; the session loop picks it up between turns.
"""

import logging
import os
import threading
import time

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer


logger = logging.getLogger(__name__)


class CurriculumChangeHandler(FileSystemEventHandler):
    """Flags modifications of one file, debounced"""

    DEBOUNCE_SECONDS = 0.5

    def __init__(self, filepath: str):
        super().__init__()
        self.filepath = os.path.abspath(filepath)
        self.changed = threading.Event()
        self.last_modified = 0.0

    def on_modified(self, event):
        self._check(event.src_path)

    def on_created(self, event):
        self._check(event.src_path)

    def on_moved(self, event):
        # Editors that save via rename
        self._check(getattr(event, 'dest_path', ''))

    def _check(self, path):
        if not path or os.path.abspath(path) != self.filepath:
            return
        now = time.time()
        if now - self.last_modified < self.DEBOUNCE_SECONDS:
            return
        self.last_modified = now
        logger.debug('Curriculum file changed: %s', self.filepath)
        self.changed.set()


class CurriculumWatcher:
    """Watches a curriculum file for the duration of a session"""

    def __init__(self, filepath: str):
        self.filepath = os.path.abspath(filepath)
        self.handler = CurriculumChangeHandler(self.filepath)
        self.observer = None

    def start(self):
        if self.observer is not None:
            return
        self.observer = Observer()
        self.observer.schedule(self.handler, os.path.dirname(self.filepath), recursive=False)
        self.observer.daemon = True
        self.observer.start()

    def stop(self):
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join(timeout=2)
        self.observer = None

    def consume_change(self) -> bool:
        """True once per batch of changes since the last call"""
        if self.handler.changed.is_set():
            self.handler.changed.clear()
            return True
        return False
