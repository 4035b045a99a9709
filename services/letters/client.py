"""
Draft API Client

Thin requests wrapper around the JSON API, used wherever a draft is
edited outside the server process (layout editor sessions, autosave).
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from .exceptions import LetterError, SaveError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class DraftApiClient:
    """
    Args:
        base_url: Server root, e.g. "http://localhost:5005"
        token: Bearer token from POST /auth/login
        session: Optional requests.Session (tests pass a fake)
    """

    def __init__(self, base_url: str, token: Optional[str] = None, session=None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/json'}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    @staticmethod
    def _error_message(response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f'HTTP {response.status_code}'
        if isinstance(body, dict):
            return body.get('error') or body.get('message') or f'HTTP {response.status_code}'
        return f'HTTP {response.status_code}'

    def _request(self, method: str, path: str, error_cls=LetterError, **kwargs) -> Any:
        url = f'{self.base_url}{path}'
        try:
            response = self.session.request(method, url, headers=self._headers(),
                                            timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise error_cls(f'{method} {path} failed: {e}') from e

        if response.status_code >= 400:
            message = self._error_message(response)
            logger.warning(f'{method} {path} returned {response.status_code}: {message}')
            if error_cls is SaveError:
                raise SaveError(message, status_code=response.status_code)
            raise error_cls(message)
        return response.json()

    def get_draft(self, draft_id) -> Dict[str, Any]:
        return self._request('GET', f'/drafts/{draft_id}')

    def list_businesses(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/businesses')

    def list_recipients(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/recipients')

    def update_draft(self, draft_id, **fields) -> Dict[str, Any]:
        """PATCH a partial draft. Raises SaveError on failure."""
        return self._request('PATCH', f'/drafts/{draft_id}', error_cls=SaveError, json=fields)

    def save_layout(self, draft_id, layout: Dict[str, Any]) -> Dict[str, Any]:
        return self.update_draft(draft_id, layout=layout)

    def finalize(self, draft_id) -> Dict[str, Any]:
        return self._request('POST', f'/drafts/{draft_id}/finalize', error_cls=SaveError)
