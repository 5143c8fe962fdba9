#!/usr/bin/env python3
"""
Curriculum and segment values.
A curriculum is an ordered list of segments; each segment owns one reference
transcript the learner types through.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .state import CurriculumError


@dataclass(frozen=True)
class Segment:
    """One lesson unit"""
    id: str
    title: str
    reference_transcript: str
    target_file: str = ''
    explanation: str = ''
    kind: str = 'build'                     # build|refactor
    starting_code: str = ''
    checkpoints: Dict[str, bool] = field(default_factory=lambda: {
        'code_written': True,
        'syntax_verified': True,
        'code_reviewed': True,
        'committed': True,
    })

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'title': self.title,
            'kind': self.kind,
            'reference_transcript': self.reference_transcript,
            'target_file': self.target_file,
            'explanation': self.explanation,
            'starting_code': self.starting_code,
            'checkpoints': dict(self.checkpoints),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Segment':
        transcript = _first(data, 'reference_transcript', 'referenceTranscript', 'golden_code', 'goldenCode')
        if not data.get('id') or transcript is None:
            raise CurriculumError(f"Segment is missing 'id' or a reference transcript: {data.get('title', '?')}")
        checkpoints = data.get('checkpoints') or {}
        return cls(
            id=str(data['id']),
            title=data.get('title', data['id']),
            reference_transcript=transcript,
            target_file=_first(data, 'target_file', 'targetFile') or '',
            explanation=data.get('explanation', ''),
            kind=data.get('kind', data.get('type', 'build')),
            starting_code=_first(data, 'starting_code', 'startingCode') or '',
            checkpoints={
                'code_written': checkpoints.get('code_written', checkpoints.get('codeWritten', True)),
                'syntax_verified': checkpoints.get('syntax_verified', checkpoints.get('syntaxVerified', True)),
                'code_reviewed': checkpoints.get('code_reviewed', checkpoints.get('codeReviewed', True)),
                'committed': checkpoints.get('committed', True),
            },
        )


@dataclass
class Curriculum:
    """A project broken into segments"""
    id: str
    project_name: str
    project_goal: str
    working_directory: str
    segments: List[Segment] = field(default_factory=list)
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def get_segment(self, index: int) -> Optional[Segment]:
        if 0 <= index < len(self.segments):
            return self.segments[index]
        return None

    def is_complete(self, completed_ids: Iterable[str]) -> bool:
        done = set(completed_ids)
        return all(segment.id in done for segment in self.segments)

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'project_name': self.project_name,
            'project_goal': self.project_goal,
            'working_directory': self.working_directory,
            'created_at': self.created_at,
            'segments': [segment.to_dict() for segment in self.segments],
        }

    @classmethod
    def from_dict(cls, data: Dict, base_dir: Path = None) -> 'Curriculum':
        segments = [Segment.from_dict(s) for s in data.get('segments', [])]
        if not segments:
            raise CurriculumError('Curriculum has no segments')

        working_dir = _first(data, 'working_directory', 'workingDirectory') or '.'
        if base_dir is not None and not Path(working_dir).is_absolute():
            working_dir = str((base_dir / working_dir).resolve())

        return cls(
            id=str(data.get('id', 'curriculum')),
            project_name=_first(data, 'project_name', 'projectName') or 'project',
            project_goal=_first(data, 'project_goal', 'projectGoal') or '',
            working_directory=working_dir,
            segments=segments,
            created_at=_first(data, 'created_at', 'createdAt') or datetime.now().isoformat(),
        )


def _first(data: Dict, *keys: str):
    for key in keys:
        if key in data:
            return data[key]
    return None


def load_curriculum(path: str) -> Curriculum:
    """Load a curriculum JSON file; relative working directories resolve against its folder"""
    path = Path(path).expanduser()
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise CurriculumError(f'Curriculum file not found: {path}')
    except (json.JSONDecodeError, IOError) as e:
        raise CurriculumError(f'Could not read curriculum {path}: {e}')

    if not isinstance(data, dict):
        raise CurriculumError(f'Curriculum {path} must be a JSON object')
    return Curriculum.from_dict(data, base_dir=path.resolve().parent)
