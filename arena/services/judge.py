import base64
import binascii
import logging
import secrets
from typing import Optional

import httpx

from arena.errors import InvalidParameter, JudgeUnavailable
from .problems import LANGUAGES

# Judge0 status ids
ACCEPTED = 3
COMPILATION_ERROR = 6

PASS = '@@PASS'
FAIL = '@@FAIL'
HIDDEN_PASS = '@@HIDDEN_PASS'
HIDDEN_FAIL = '@@HIDDEN_FAIL'
MARKERS = (PASS, FAIL, HIDDEN_PASS, HIDDEN_FAIL)
# replaced per submission; only markers tagged with it are counted
NONCE_PLACEHOLDER = '{{NONCE}}'


def decode_source(encoded) -> str:
    """Decode the base64 source sent by the editor."""
    if not isinstance(encoded, str) or not encoded:
        raise InvalidParameter('source_code is required')
    try:
        return base64.b64decode(encoded, validate=True).decode('utf-8')
    except (binascii.Error, UnicodeDecodeError):
        raise InvalidParameter('source_code must be base64-encoded UTF-8')


def _b64(text: str) -> str:
    return base64.b64encode(text.encode('utf-8')).decode('ascii')


def _unb64(value) -> str:
    if not value:
        return ''
    try:
        return base64.b64decode(value).decode('utf-8', errors='replace')
    except binascii.Error:
        return str(value)


class GradedResult:
    def __init__(self, status, score, breakdown, stdout='', stderr='', compile_output='',
                 time=None, memory=None, has_hidden_case=False, hidden_case_passed=None):
        self.status = status
        self.score = score
        self.breakdown = breakdown
        self.stdout = stdout
        self.stderr = stderr
        self.compile_output = compile_output
        self.time = time
        self.memory = memory
        self.has_hidden_case = has_hidden_case
        self.hidden_case_passed = hidden_case_passed

    @classmethod
    def unavailable(cls, message: str) -> 'GradedResult':
        return cls(status='Judge Unavailable', score=0, breakdown={}, stderr=message)

    def to_dict(self):
        return {
            'status': self.status,
            'time': self.time,
            'memory': self.memory,
            'stdout': self.stdout,
            'stderr': self.stderr,
            'compile_output': self.compile_output,
            'score': self.score,
            'breakdown': self.breakdown,
            'hasHiddenCase': self.has_hidden_case,
            'hiddenCasePassed': self.hidden_case_passed,
        }


class JudgeGateway:
    """Grades member source against the problem's server-side harness on Judge0.

    The call is synchronous (``wait=true``); callers must not hold a room lock
    while it runs.
    """

    def __init__(self, problems, base_url: str, api_key: Optional[str] = None, timeout: float = 30.0,
                 hidden_case_weight: int = 20, transport=None, logger=None):
        self._problems = problems
        self._base_url = base_url.rstrip('/')
        self._api_key = api_key
        self._timeout = timeout
        self._hidden_case_weight = hidden_case_weight
        self._transport = transport
        self._log = logger or logging.getLogger(__name__)

    def run(self, language_id, source_code: str, problem_id, lang: str) -> GradedResult:
        language = LANGUAGES.get(str(lang or '').lower())
        try:
            language_id = int(language_id)
        except (TypeError, ValueError):
            raise InvalidParameter('language_id must be an integer')
        if language is None or language['id'] != language_id:
            raise InvalidParameter(f'Unsupported language: {lang} ({language_id})')
        problem = self._problems.get(problem_id)
        harness = problem.harness_for(lang.lower())
        if harness is None:
            raise InvalidParameter(f'{lang} is not available for this problem')

        nonce = secrets.token_hex(16)
        submission = source_code.rstrip('\n') + '\n' + harness.replace(NONCE_PLACEHOLDER, nonce)
        self._log.info(f"[judge-submit] problem={problem.id} lang={lang} bytes={len(submission)}")
        reply = self._submit({'language_id': language_id, 'source_code': _b64(submission)})
        result = self.grade(problem, reply, nonce)
        self._log.info(
            f"[judge-result] problem={problem.id} status={result.status} score={result.score} breakdown={result.breakdown}"
        )
        return result

    def grade(self, problem, reply: dict, nonce: str) -> GradedResult:
        """Score a Judge0 reply.

        Marker lines count only when tagged with this submission's ``nonce``;
        untagged markers are ordinary user output.
        """
        status = reply.get('status') or {}
        status_id = status.get('id')
        description = status.get('description') or 'Unknown'
        stdout = _unb64(reply.get('stdout'))
        stderr = _unb64(reply.get('stderr'))
        compile_output = _unb64(reply.get('compile_output'))

        if status_id == COMPILATION_ERROR:
            return GradedResult(
                status='Compilation Error', score=0, breakdown={},
                stdout=stdout, stderr=stderr, compile_output=compile_output,
                time=reply.get('time'), memory=reply.get('memory'),
                has_hidden_case=problem.has_hidden_case, hidden_case_passed=None,
            )

        passed = 0
        hidden = None
        visible_lines = []
        for line in stdout.splitlines():
            marker, _, tag = line.strip().partition(':')
            if tag != nonce or marker not in MARKERS:
                visible_lines.append(line)
                continue
            if marker == PASS:
                passed += 1
            elif marker == FAIL:
                pass
            elif marker == HIDDEN_PASS:
                hidden = True
            elif marker == HIDDEN_FAIL:
                hidden = False

        total = problem.visible_cases
        passed = min(passed, total)
        hidden_passed = bool(hidden) if problem.has_hidden_case else None
        weight = self._hidden_case_weight if problem.has_hidden_case else 0
        score = round((100 - weight) * passed / total) if total else 0
        if hidden_passed:
            score += weight

        if status_id == ACCEPTED:
            all_passed = passed == total and hidden_passed is not False
            description = 'Accepted' if all_passed else 'Wrong Answer'

        return GradedResult(
            status=description,
            score=min(100, score),
            breakdown={'passed': passed, 'failed': total - passed, 'total': total},
            stdout='\n'.join(visible_lines),
            stderr=stderr,
            compile_output=compile_output,
            time=reply.get('time'),
            memory=reply.get('memory'),
            has_hidden_case=problem.has_hidden_case,
            hidden_case_passed=hidden_passed,
        )

    def _submit(self, body: dict) -> dict:
        headers = {'X-Auth-Token': self._api_key} if self._api_key else {}
        try:
            with httpx.Client(base_url=self._base_url, timeout=self._timeout,
                              transport=self._transport, headers=headers) as client:
                r = client.post('/submissions', params={'base64_encoded': 'true', 'wait': 'true'}, json=body)
                r.raise_for_status()
                data = r.json()
                if not isinstance(data, dict):
                    raise ValueError('unexpected judge payload')
                return data
        except httpx.TimeoutException as exc:
            self._log.warning(f"[judge-timeout] timeout={self._timeout}s")
            raise JudgeUnavailable('Judge timed out') from exc
        except httpx.HTTPError as exc:
            self._log.warning(f"[judge-error] {exc}")
            raise JudgeUnavailable('Judge request failed') from exc
        except ValueError as exc:
            raise JudgeUnavailable('Judge returned an invalid response') from exc
