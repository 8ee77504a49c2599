"""Send built requests over HTTP."""

import logging

import requests

from msg_bridge.models import DispatchOutcome, RequestDescriptor

logger = logging.getLogger(__name__)

# Max characters of a response body written to the debug log.
LOG_BODY_LIMIT = 500


class Dispatcher:
    """Issues one HTTP call per request over a shared session.

    Failures are reported in the returned outcome, never raised, and never
    retried here.
    """

    def __init__(self, session: requests.Session | None = None, timeout: float | None = None) -> None:
        """Use the given session (or a new one) and per-request timeout in seconds."""
        self.session = session or requests.Session()
        self.timeout = timeout

    def dispatch(self, request: RequestDescriptor) -> DispatchOutcome:
        """Send the request and report its status or transport error."""
        try:
            response = self.session.request(
                request.method.value,
                request.url,
                data=request.body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", request.method.value, request.url, e)
            return DispatchOutcome(method=request.method, url=request.url, error=str(e))

        outcome = DispatchOutcome(
            method=request.method,
            url=request.url,
            status_code=response.status_code,
            elapsed_ms=response.elapsed.total_seconds() * 1000,
        )
        if outcome.ok:
            logger.info("%s %s -> %s", request.method.value, request.url, response.status_code)
        else:
            logger.warning("%s %s -> %s", request.method.value, request.url, response.status_code)
        logger.debug("response body: %s", response.text[:LOG_BODY_LIMIT])
        return outcome

    def close(self) -> None:
        """Close the underlying session."""
        self.session.close()
