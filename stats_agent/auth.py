"""
Shared-secret header authentication.
"""

import hmac
from typing import Optional, Union

from fastapi import Request

from stats_agent.log import get_logger

logger = get_logger(__name__)


class Unauthorized(Exception):
    """Request carried a missing or wrong token"""

    def __init__(self, header_name: str):
        self.header_name = header_name
        super().__init__(f'A valid "{header_name}" header is required.')

    def to_dict(self) -> dict:
        return {'error': 'Unauthorized', 'message': str(self)}


class TokenAuth:
    """Compares a caller-supplied token against the configured secret"""

    def __init__(self, token: str, header_name: str = 'agent_token'):
        if not token:
            raise ValueError("Token must not be empty")
        self._token = token.encode('utf-8')
        self.header_name = header_name

    def authorize(self, header_value: Optional[Union[str, bytes]]) -> bool:
        """Exact byte match; str values are taken as UTF-8"""
        if not header_value:
            return False
        if isinstance(header_value, str):
            header_value = header_value.encode('utf-8')
        return hmac.compare_digest(header_value, self._token)

    def __call__(self, request: Request) -> None:
        """FastAPI dependency: rejects the request before the handler runs"""
        value = request.headers.get(self.header_name)
        # Starlette decodes header values as latin-1; undo that to get the bytes sent
        raw = value.encode('latin-1') if value is not None else None
        if not self.authorize(raw):
            client = request.client.host if request.client else None
            logger.warning(
                "Rejected unauthorized request",
                extra={'context': {'path': request.url.path, 'client': client}}
            )
            raise Unauthorized(self.header_name)
