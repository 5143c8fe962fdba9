#!/usr/bin/env python3
"""
Durable progress and session state.

Progress lives in the project directory so a crash or Ctrl-C can resume at
exactly the right step. Session state lives in ~/.scribe and records which
curriculum is active. Both are written atomically: a fresh temp file in the
same directory, then os.replace over the old one.
"""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from .state import PROGRESS_VERSION, Progress, ProgressError, SessionState


logger = logging.getLogger(__name__)

PROGRESS_FILENAME = '.scribe-progress.json'
LEGACY_PROGRESS_FILENAME = '.tutor-progress.json'


def atomic_write_json(path: Path, data: Dict) -> None:
    """Write JSON so readers see either the old file or the new one, never a partial write"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=f'.{path.name}.', suffix='.tmp', dir=str(path.parent))
    try:
        with os.fdopen(fd, 'w') as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def read_json(path: Path) -> Optional[Dict]:
    """Read a JSON object, or None when missing or unreadable"""
    path = Path(path)
    if not path.exists():
        return None
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning('Could not read %s: %s', path, e)
        return None
    if not isinstance(data, dict):
        logger.warning('Ignoring %s: expected a JSON object', path)
        return None
    return data


class ProgressStore:
    """Per-project progress record, cached in memory and persisted on every change"""

    def __init__(self, project_dir: str):
        self.project_dir = Path(project_dir)
        self.path = self.project_dir / PROGRESS_FILENAME
        self.current: Optional[Progress] = None
        self.upgraded_from: Optional[int] = None
        self._warned_legacy = False

    def load(self) -> Optional[Progress]:
        """Read the progress file, upgrading older versions in memory"""
        data = read_json(self.path)
        if data is None:
            data = read_json(self.project_dir / LEGACY_PROGRESS_FILENAME)
        if data is None:
            return None

        version = data.get('version')
        if not isinstance(version, int) or version < PROGRESS_VERSION:
            self.upgraded_from = version if isinstance(version, int) else 1
            if not self._warned_legacy:
                logger.warning(
                    'Progress file version %s is older than %d; upgrading',
                    version, PROGRESS_VERSION,
                )
                self._warned_legacy = True

        self.current = Progress.from_dict(data)
        return self.current

    def save(self, progress: Progress) -> None:
        """Persist a progress record (always written at the current version)"""
        progress.version = PROGRESS_VERSION
        progress.last_updated_at = datetime.now().isoformat()
        atomic_write_json(self.path, progress.to_dict())
        self.current = progress

    def create(self, segment_id: str, segment_index: int, total_steps: int = 0) -> Progress:
        """Start a fresh record for a segment"""
        progress = Progress(
            current_segment_id=segment_id,
            current_segment_index=segment_index,
            total_steps=total_steps,
        )
        self.save(progress)
        logger.info('Created progress for segment %s', segment_id)
        return progress

    def update(self, **fields) -> Progress:
        """Merge fields into the current record and persist"""
        progress = self.current or self.load()
        if progress is None:
            raise ProgressError(f'No progress record in {self.project_dir}')

        for key, value in fields.items():
            if not hasattr(progress, key):
                raise ProgressError(f'Unknown progress field: {key}')
            setattr(progress, key, value)
        self.save(progress)
        return progress

    def mark_step_checked(self) -> Optional[Progress]:
        """Record the current step as written, verified, and reviewed, once all three hold"""
        progress = self.current or self.load()
        if progress is None:
            return None
        if not (progress.code_written and progress.syntax_verified and progress.code_reviewed):
            return progress
        logger.debug('Step %d passed its checks', progress.current_step_index + 1)
        return self.update(checked_step_index=progress.current_step_index)

    def add_completed_step(self, description: str) -> Progress:
        """Append a note to the completed-steps log"""
        progress = self.current or self.load()
        if progress is None:
            raise ProgressError(f'No progress record in {self.project_dir}')
        progress.completed_steps.append(description)
        self.save(progress)
        return progress

    def flush(self) -> None:
        """Write the in-memory record again, if there is one"""
        if self.current is not None:
            self.save(self.current)

    def clear(self) -> None:
        """Delete the progress file"""
        self.current = None
        if self.path.exists():
            self.path.unlink()


class SessionStore:
    """Session state in ~/.scribe/state.json"""

    def __init__(self, path: Path = None):
        if path is None:
            from ..config import get_config_dir
            path = get_config_dir() / 'state.json'
        self.path = Path(path)

    def load(self) -> Optional[SessionState]:
        data = read_json(self.path)
        if data is None:
            return None
        return SessionState.from_dict(data)

    def save(self, state: SessionState) -> None:
        state.touch()
        atomic_write_json(self.path, state.to_dict())

    def create(self, curriculum_path: str) -> SessionState:
        """Fresh state pointing at a curriculum file"""
        state = SessionState(curriculum_path=str(curriculum_path))
        self.save(state)
        return state

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
