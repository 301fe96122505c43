"""
Lightweight graph API client with optional OAuth authentication
Posts GraphQL documents and classifies remote errors
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import httpx
import jwt

from graph_harness.config.settings import HarnessConfig, get_config
from graph_harness.utils.error_handling import (
    RemoteError,
    RemoteQueryError,
    StructuredLogger,
    classify_remote_error,
)

logger = logging.getLogger(__name__)

# Failures that happen before the request reaches the server; safe to retry
RETRYABLE_TRANSPORT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)


@dataclass
class OAuthToken:
    """Simple OAuth token container with expiration"""
    access_token: str
    expires_at: datetime

    def is_expired(self, buffer_seconds: int = 60) -> bool:
        return datetime.now(timezone.utc) >= (self.expires_at - timedelta(seconds=buffer_seconds))


class GraphClient:
    """Async client for the remote graph-query API"""

    retry_delay = 1.0

    def __init__(self, config: Optional[HarnessConfig] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or get_config()
        self._transport = transport
        self._cached_token: Optional[OAuthToken] = None

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.config.request_timeout, transport=self._transport)

    async def _get_access_token(self) -> Optional[str]:
        """Static token, cached OAuth token, or None when auth is disabled"""
        if self.config.api_token:
            return self.config.api_token
        if not self.config.uses_oauth:
            return None

        if self._cached_token is None or self._cached_token.is_expired():
            now = datetime.now(timezone.utc)
            payload = {
                'iss': self.config.oauth_service_id,
                'sub': self.config.oauth_service_id,
                'aud': self.config.oauth_audience,
                'iat': int(now.timestamp()),
                'exp': int((now + timedelta(minutes=15)).timestamp())
            }
            client_assertion = jwt.encode(payload, self.config.oauth_private_key, algorithm='RS256')

            oauth_data = {
                'grant_type': 'client_credentials',
                'client_assertion_type': 'urn:ietf:params:oauth:client-assertion-type:jwt-bearer',
                'client_assertion': client_assertion
            }

            async with self._http_client() as client:
                response = await client.post(
                    f"{self.config.api_base_url.rstrip('/')}{self.config.oauth_token_path}",
                    data=oauth_data,
                    headers={'Content-Type': 'application/x-www-form-urlencoded'}
                )

            if response.status_code != 200:
                raise RemoteError(f"OAuth failed: {response.status_code} - {response.text}", status_code=response.status_code)

            token_data = response.json()
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=token_data.get('expires_in', 900))
            self._cached_token = OAuthToken(token_data['access_token'], expires_at)
            logger.debug(f"OAuth token refreshed, expires at {expires_at.isoformat()}")

        return self._cached_token.access_token

    async def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        access_token = await self._get_access_token()
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        """POST with token refresh on 401/403 and retry on connection failures"""
        attempts = self.config.max_retries

        for attempt in range(attempts):
            headers = await self._headers()
            try:
                async with self._http_client() as client:
                    response = await client.post(self.config.graphql_url, json=payload, headers=headers)
            except RETRYABLE_TRANSPORT_ERRORS as e:
                if attempt == attempts - 1:
                    raise RemoteError(f"Request failed after {attempts} attempts: {e}") from e
                logger.warning(f"Connection failed (attempt {attempt + 1}/{attempts}), retrying: {e}")
                await asyncio.sleep(self.retry_delay)
                continue
            except httpx.RequestError as e:
                raise RemoteError(f"Request failed: {e}") from e

            if response.status_code in (401, 403) and self.config.uses_oauth and attempt < attempts - 1:
                logger.info(f"Authentication failed (attempt {attempt + 1}), refreshing token")
                self._cached_token = None
                continue

            return response

        raise RemoteError("Request failed after all retry attempts")

    async def execute(
        self,
        document: str,
        variables: Optional[Dict[str, Any]] = None,
        operation: str = "query",
        operation_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Execute a GraphQL document and return its "data" object.

        Args:
            document: GraphQL query or mutation text
            variables: Variable values, serialized as JSON
            operation: "query" or "mutation"; used to classify remote errors
            operation_name: Optional operation name sent alongside the document

        Raises:
            ValidationError, NotFoundError, RemoteQueryError: classified remote errors
            RemoteError: server or transport failures
        """
        payload: Dict[str, Any] = {"query": document, "variables": variables or {}}
        if operation_name:
            payload["operationName"] = operation_name

        response = await self._post(payload)

        try:
            body = response.json()
        except ValueError:
            body = {"raw_response": response.text}

        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            messages = [e.get("message", str(e)) if isinstance(e, dict) else str(e) for e in errors]
            error = classify_remote_error(messages, operation, response.status_code)
            StructuredLogger.log_error(
                type(error).__name__,
                str(error),
                extra_context={"operation": operation_name or operation, "variables": variables},
                level=logging.INFO,
            )
            raise error

        if response.status_code >= 500:
            raise RemoteError(f"HTTP {response.status_code}: {response.text[:500]}", status_code=response.status_code)
        if response.status_code >= 400:
            raise RemoteQueryError(f"HTTP {response.status_code}: {response.text[:500]}", status_code=response.status_code)

        data = body.get("data") if isinstance(body, dict) else None
        if data is None:
            raise RemoteError(f"Response carried neither data nor errors: {body}", status_code=response.status_code)
        return data
