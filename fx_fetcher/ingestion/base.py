"""Shared plumbing for the JSON-over-HTTP provider clients."""

from __future__ import annotations

from typing import Any, Mapping

import requests

from fx_fetcher.errors import MalformedUpstreamResponse, UpstreamUnavailable
from fx_fetcher.utils.logger import get_logger, mask_secret

LOGGER = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0


class JSONSourceClient:
    """Issue one GET against a provider and decode its JSON body.

    Subclasses set :attr:`provider` and build URLs; this class owns the session,
    the timeout, and the translation of transport problems into
    :class:`UpstreamUnavailable` / :class:`MalformedUpstreamResponse`.
    """

    provider = "upstream"

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get_json(self, url: str, params: Mapping[str, str] | None = None) -> Any:
        LOGGER.info("Calling %s: %s", self.provider, mask_secret(url, self.api_key))
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            # The requests error text carries the full URL, key included, so it is
            # neither chained nor logged unmasked.
            reason = mask_secret(str(exc), self.api_key)
            raise UpstreamUnavailable(f"{self.provider} request failed: {reason}") from None
        self._raise_with_context(response)
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedUpstreamResponse(
                f"{self.provider} response is not valid JSON",
                details={"body": response.text[:500]},
            ) from exc

    def _raise_with_context(self, response: requests.Response) -> None:
        try:
            response.raise_for_status()
        except requests.HTTPError:
            status = response.status_code
            LOGGER.error(
                "%s responded with HTTP %s: %s", self.provider, status, response.text[:500]
            )
            raise UpstreamUnavailable(
                f"{self.provider} call failed: {status} {response.reason}", status=status
            ) from None

    def close(self) -> None:
        self.session.close()


__all__ = ["DEFAULT_TIMEOUT", "JSONSourceClient"]
