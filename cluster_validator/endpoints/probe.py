"""
Endpoint liveness probe

Two stages per URL, short-circuiting:
1. DNS - resolve the host (getaddrinfo in a worker thread, bounded by the
   timeout). Failure -> DNS_FAILED, no HTTP request is made.
2. HTTP - GET with connect and total time bounded by the timeout. Any
   status in [200, 599] is HEALTHY: the check is about reachability, so a
   401 or 503 still proves the path works. Redirects are not followed.
   Transport errors, timeouts and codes outside the range -> HTTP_FAILED.

Probe failures are results, never exceptions.
"""

import asyncio
import logging
import socket
from typing import Awaitable, Callable, List, Optional, Sequence, Union

import httpx

from ..models import EndpointCandidate, EndpointResult, EndpointStatus
from ..utils.concurrency import execute_with_limit

logger = logging.getLogger(__name__)

Resolver = Callable[[str], Awaitable[object]]

HEALTHY_STATUS_RANGE = range(200, 600)


async def resolve_host(host: str) -> list:
    """Resolve host with the system resolver

    Raises:
        socket.gaierror: the name does not resolve
    """
    return await asyncio.to_thread(socket.getaddrinfo, host, None)


class EndpointProbe:
    """DNS-then-HTTP probe

    Example:
        probe = EndpointProbe(timeout=10)
        result = await probe.probe("https://grafana.example.com/")
        if result.healthy:
            print(result.status_code)
    """

    def __init__(
        self,
        timeout: float = 10,
        verify_tls: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        resolver: Optional[Resolver] = None,
    ):
        """
        Args:
            timeout: per-probe bound in seconds for each stage
            verify_tls: verify server certificates
            transport: httpx transport (tests use httpx.MockTransport)
            resolver: async callable resolving a host, raising OSError on failure
        """
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.transport = transport
        self.resolver = resolver or resolve_host

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=self.timeout),
            verify=self.verify_tls,
            follow_redirects=False,
            transport=self.transport,
        )

    async def _resolves(self, host: str) -> Optional[str]:
        """None when host resolves, otherwise the error text"""
        try:
            await asyncio.wait_for(self.resolver(host), timeout=self.timeout)
        except asyncio.TimeoutError:
            return f"DNS lookup timed out after {self.timeout}s"
        except (OSError, UnicodeError) as e:
            return str(e) or type(e).__name__
        return None

    async def probe(
        self,
        target: Union[str, EndpointCandidate],
        client: Optional[httpx.AsyncClient] = None,
    ) -> EndpointResult:
        """
        Probe one URL or candidate

        Args:
            target: URL string or EndpointCandidate (probed over https)
            client: shared client; a private one is created when omitted

        Returns:
            EndpointResult; status_code is None unless a response arrived
        """
        if isinstance(target, EndpointCandidate):
            candidate, url = target, target.url
            host = target.host
        else:
            candidate, url = None, target
            try:
                host = httpx.URL(url).host
            except httpx.InvalidURL as e:
                return EndpointResult(url, EndpointStatus.DNS_FAILED, error=str(e))

        dns_error = await self._resolves(host) if host else "no host in URL"
        if dns_error is not None:
            logger.debug("DNS: %s failed to resolve: %s", host, dns_error)
            return EndpointResult(url, EndpointStatus.DNS_FAILED, error=dns_error, candidate=candidate)

        if client is None:
            async with self._client() as own_client:
                return await self._fetch(own_client, url, candidate)
        return await self._fetch(client, url, candidate)

    async def _fetch(
        self,
        client: httpx.AsyncClient,
        url: str,
        candidate: Optional[EndpointCandidate],
    ) -> EndpointResult:
        try:
            response = await asyncio.wait_for(client.get(url), timeout=self.timeout)
        except asyncio.TimeoutError:
            error = f"timed out after {self.timeout}s"
            logger.debug("HTTP: %s %s", url, error)
            return EndpointResult(url, EndpointStatus.HTTP_FAILED, error=error, candidate=candidate)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("HTTP: %s connection failed: %s", url, e)
            return EndpointResult(
                url, EndpointStatus.HTTP_FAILED, error=str(e) or type(e).__name__, candidate=candidate
            )

        code = response.status_code
        if code in HEALTHY_STATUS_RANGE:
            logger.debug("HTTP: %s -> %d", url, code)
            return EndpointResult(url, EndpointStatus.HEALTHY, status_code=code, candidate=candidate)
        return EndpointResult(url, EndpointStatus.HTTP_FAILED, status_code=code, candidate=candidate)

    async def probe_all(
        self,
        candidates: Sequence[Union[str, EndpointCandidate]],
        max_concurrent: int = 5,
    ) -> List[EndpointResult]:
        """Probe candidates concurrently; results keep candidate order"""
        if not candidates:
            return []
        async with self._client() as client:
            results = await execute_with_limit(
                [self.probe(candidate, client) for candidate in candidates],
                max_concurrent=max_concurrent,
            )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)
