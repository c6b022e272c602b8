"""
GitHub GraphQL Transport.

Posts GraphQL documents and classifies every failure into the error taxonomy:
authentication failures abort, rate limits sleep and re-issue the same request
without bound, transient failures retry with exponential backoff up to a fixed
number of attempts, and payload-level errors are raised immediately.
"""

import time
from typing import Any, Callable, Dict, Optional

import requests
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import logger
from miners.errors import (
    AuthenticationFailure,
    NotFound,
    RateLimited,
    TransientServiceError,
    UpstreamLogicalError,
)

DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"


class GitHubGraphQLClient:
    """
    Blocking GraphQL client with rate limit and retry handling.

    Attributes:
        endpoint (str): GraphQL endpoint url.
        session (requests.Session): Session carrying authentication headers.
        rate_limit_waits (int): Number of rate limit sleeps so far.
        request_count (int): Number of HTTP requests issued so far.
    """

    def __init__(
        self,
        token: str,
        endpoint: str = DEFAULT_GRAPHQL_URL,
        session: Optional[requests.Session] = None,
        max_attempts: int = 5,
        backoff_seconds: float = 1.0,
        default_rate_limit_wait: float = 60,
        timeout_seconds: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the client.

        Args:
            token (str): GitHub token sent as bearer credentials.
            endpoint (str): GraphQL endpoint url.
            session (Optional[requests.Session]): Session to reuse, mainly for tests.
            max_attempts (int): Attempts for transient failures before giving up.
            backoff_seconds (float): First backoff delay, doubled on every attempt.
            default_rate_limit_wait (float): Wait when the server does not state one.
            timeout_seconds (float): Per request timeout.
            sleep (Callable[[float], None]): Blocking sleep used for every wait.
        """
        self.endpoint = endpoint
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"bearer {token}",
                "Accept": "application/json",
                "User-Agent": "prmetrics",
            }
        )
        self.default_rate_limit_wait = default_rate_limit_wait
        self.timeout_seconds = timeout_seconds
        self.rate_limit_waits = 0
        self.request_count = 0
        self._sleep = sleep
        self._retrying = Retrying(
            retry=retry_if_exception_type(TransientServiceError),
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=backoff_seconds),
            sleep=sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )

    def execute(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run a GraphQL document and return its ``data`` object.

        Args:
            query (str): GraphQL document.
            variables (Dict[str, Any]): Variables of the document.

        Returns:
            Dict[str, Any]: The ``data`` member of the response.

        Raises:
            AuthenticationFailure: If the credentials are rejected.
            TransientServiceError: If transient failures outlast the retry budget.
            UpstreamLogicalError: If the payload carries errors or no data.
            NotFound: If the endpoint answers 404.
        """
        payload = {"query": query, "variables": variables}
        while True:
            try:
                return self._retrying(self._post, payload)
            except RateLimited as e:
                self.rate_limit_waits += 1
                logger.warning(
                    {
                        "message": "GitHub rate limit hit, waiting before retrying",
                        "wait_seconds": e.retry_after,
                        "rate_limit_waits": self.rate_limit_waits,
                    }
                )
                self._sleep(e.retry_after)

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.request_count += 1
        try:
            response = self.session.post(
                self.endpoint, json=payload, timeout=self.timeout_seconds
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientServiceError(f"GitHub request failed: {e}") from e

        self._raise_for_status(response)

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamLogicalError("GitHub returned a non-JSON payload") from e

        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            if any(
                isinstance(error, dict) and error.get("type") == "RATE_LIMITED"
                for error in errors
            ):
                raise RateLimited("GraphQL rate limit exceeded", self._retry_after(response))
            messages = "; ".join(
                str(error.get("message", error)) if isinstance(error, dict) else str(error)
                for error in errors
            )
            raise UpstreamLogicalError(f"GraphQL query failed: {messages}", errors)

        if not isinstance(body, dict) or body.get("data") is None:
            raise UpstreamLogicalError("GraphQL response carries no data")

        return body["data"]

    def _raise_for_status(self, response: requests.Response) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return

        message = self._error_message(response)
        if status == 429 or (status == 403 and self._is_rate_limited(response, message)):
            raise RateLimited(message, self._retry_after(response))
        if status in (401, 403):
            raise AuthenticationFailure(message)
        if status == 404:
            raise NotFound(message)
        if status >= 500:
            raise TransientServiceError(message)
        raise UpstreamLogicalError(message)

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
            if isinstance(body, dict) and body.get("message"):
                return f"GitHub request failed ({response.status_code}): {body['message']}"
        except ValueError:
            pass
        return f"GitHub request failed ({response.status_code})"

    @staticmethod
    def _is_rate_limited(response: requests.Response, message: str) -> bool:
        headers = response.headers
        return (
            headers.get("Retry-After") is not None
            or headers.get("X-RateLimit-Remaining") == "0"
            or "rate limit" in message.lower()
        )

    def _retry_after(self, response: requests.Response) -> float:
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return max(float(retry_after), 0.0)
            except ValueError:
                pass

        reset = response.headers.get("X-RateLimit-Reset")
        if reset:
            try:
                return max(float(reset) - time.time(), 1.0)
            except ValueError:
                pass

        return self.default_rate_limit_wait

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        logger.warning(
            {
                "message": "Transient GitHub failure, backing off",
                "attempt": retry_state.attempt_number,
                "wait_seconds": retry_state.next_action.sleep,
                "error": str(retry_state.outcome.exception()),
            }
        )
