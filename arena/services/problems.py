import json
import random
from pathlib import Path
from typing import Dict, List, Optional

from arena.errors import NotFound

DEFAULT_PROBLEMS_DIR = Path(__file__).resolve().parent.parent / 'data' / 'problems'

# Judge0 language ids, keyed by the client's language name
LANGUAGES = {
    'typescript': {'id': 74, 'ext': 'ts'},
    'python': {'id': 71, 'ext': 'py'},
}


class Problem:
    def __init__(self, id, title, difficulty, description, starting_code, harness,
                 visible_cases, has_hidden_case):
        self.id = id
        self.title = title
        self.difficulty = difficulty
        self.description = description
        self.starting_code: Dict[str, str] = starting_code
        # Appended to the member's source server-side; never sent to clients
        self.harness: Dict[str, str] = harness
        self.visible_cases = visible_cases
        self.has_hidden_case = has_hidden_case

    def harness_for(self, lang: str) -> Optional[str]:
        return self.harness.get(lang)

    def to_public_dict(self):
        return {
            'problemId': self.id,
            'title': self.title,
            'difficulty': self.difficulty,
            'startingCode': dict(self.starting_code),
            'problemDescription': self.description,
        }


class ProblemCatalog:
    """Problem definitions loaded from ``<root>/<problem-id>/``.

    Each directory holds ``problem.json`` plus ``starter.<ext>`` and
    ``harness.<ext>`` per supported language.
    """

    def __init__(self, problems: List[Problem]):
        self._problems = {p.id: p for p in problems}

    @classmethod
    def from_dir(cls, root=None) -> 'ProblemCatalog':
        root = Path(root) if root else DEFAULT_PROBLEMS_DIR
        problems = []
        for meta_path in sorted(root.glob('*/problem.json')):
            problems.append(_load_problem(meta_path))
        return cls(problems)

    def get(self, problem_id) -> Problem:
        problem = self._problems.get(str(problem_id))
        if problem is None:
            raise NotFound('Problem not found')
        return problem

    def pick(self, difficulty: str, rng=None) -> Optional[Problem]:
        candidates = [p for p in self._problems.values() if p.difficulty == difficulty]
        if not candidates:
            return None
        return (rng or random).choice(sorted(candidates, key=lambda p: p.id))

    def __len__(self):
        return len(self._problems)


def _load_problem(meta_path: Path) -> Problem:
    folder = meta_path.parent
    meta = json.loads(meta_path.read_text(encoding='utf-8'))
    starting_code = {}
    harness = {}
    for lang, language in LANGUAGES.items():
        starter = folder / f"starter.{language['ext']}"
        checker = folder / f"harness.{language['ext']}"
        if starter.exists():
            starting_code[lang] = starter.read_text(encoding='utf-8')
        if checker.exists():
            harness[lang] = checker.read_text(encoding='utf-8')
    return Problem(
        id=meta.get('id') or folder.name,
        title=meta['title'],
        difficulty=meta['difficulty'],
        description=meta.get('description', ''),
        starting_code=starting_code,
        harness=harness,
        visible_cases=int(meta['visibleCases']),
        has_hidden_case=bool(meta.get('hiddenCase', False)),
    )
