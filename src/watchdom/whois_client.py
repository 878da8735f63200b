"""
WHOIS Client module for domain monitoring.

This module provides a WHOIS client that speaks the plain port-43
protocol. It returns raw response text and leaves interpretation to the
status classifier; every failure to obtain usable text is raised as a
TransportError.
"""

import asyncio
import re
import socket
import time
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from .enums import LogLevel, WHOISErrorCode
from .exceptions import RateLimitError, TransportError

if TYPE_CHECKING:
    from .audit_logger import AuditLogger


WHOIS_PORT = 43

# Throttling notices open a line; hostnames inside a record never do
RATE_LIMIT_PATTERN = re.compile(
    r"^[\s%#*>-]*(?:(?:whois|your|query|connection|request)\s+)*"
    r"(?:(?:rate\s+)?limit\s+(?:exceeded|reached)|rate\s+limited"
    r"|too\s+many\s+(?:requests|queries|connections)|quota\s+exceeded"
    r"|access\s+denied|try\s+again\s+later)\b",
    re.IGNORECASE | re.MULTILINE,
)

# A record or a no-match answer means the query was served
ANSWER_PATTERN = re.compile(
    r"^\s*domain\s+name\s*:|no match for|no entries found",
    re.IGNORECASE | re.MULTILINE,
)


@dataclass
class WHOISResponse:
    """Raw answer from a WHOIS server."""

    domain: str
    server: str
    raw_response: str
    response_time_ms: float


def detect_rate_limit(raw_response: str) -> bool:
    """True if the response is a throttling notice rather than an answer."""
    text = raw_response or ""
    if ANSWER_PATTERN.search(text):
        return False
    return RATE_LIMIT_PATTERN.search(text) is not None


class WHOISClient:
    """
    Asynchronous port-43 WHOIS client.

    The blocking socket exchange runs in the default executor and is
    bounded by ``timeout``. Nothing is retried here: a failed lookup
    raises and the caller decides what to do.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        simulation_mode: bool = False,
        logger: Optional["AuditLogger"] = None,
    ) -> None:
        """
        Initialize the WHOIS client.

        Args:
            timeout: Socket and overall request timeout in seconds
            simulation_mode: If True, no real network requests are made
            logger: Optional audit logger
        """
        self._timeout = timeout
        self._simulation_mode = simulation_mode
        self._logger = logger

    @property
    def simulation_mode(self) -> bool:
        return self._simulation_mode

    def _log_debug(self, message: str, data: Optional[dict] = None) -> None:
        if self._logger:
            self._logger.log(LogLevel.DEBUG, "WHOISClient", message, data)

    def _log_error(
        self,
        message: str,
        domain: str,
        server: str,
        error: Optional[BaseException] = None,
    ) -> None:
        if self._logger:
            self._logger.log_error(
                "WHOISClient", message, error=error, domain=domain, server=server
            )

    async def query(self, domain: str, server: str) -> WHOISResponse:
        """
        Query a WHOIS server for a domain.

        Args:
            domain: Domain to look up (canonical form)
            server: WHOIS server hostname

        Returns:
            WHOISResponse with the raw text

        Raises:
            RateLimitError: If the server signals throttling
            TransportError: On network failure, timeout or empty answer
        """
        started = time.monotonic()
        self._log_debug("WHOIS query", {"domain": domain, "server": server})

        if self._simulation_mode:
            raw_response = self._get_simulated_response(domain)
        else:
            raw_response = await self._fetch(domain, server)

        elapsed_ms = (time.monotonic() - started) * 1000
        response = self._check_response(domain, server, raw_response, elapsed_ms)
        self._log_debug(
            "WHOIS response",
            {"domain": domain, "bytes": len(raw_response), "ms": round(elapsed_ms, 1)},
        )
        return response

    async def _fetch(self, domain: str, server: str) -> str:
        try:
            return await self._execute_whois_query(domain, server)
        except asyncio.TimeoutError as e:
            self._log_error("WHOIS query timed out", domain, server, e)
            raise TransportError(
                code=WHOISErrorCode.TIMEOUT.value,
                message=f"WHOIS query to {server} timed out after {self._timeout}s",
                details={"domain": domain, "server": server},
            ) from e
        except OSError as e:
            self._log_error("WHOIS socket error", domain, server, e)
            raise TransportError(
                code=WHOISErrorCode.NETWORK_ERROR.value,
                message=f"Cannot query {server}: {e}",
                details={"domain": domain, "server": server},
            ) from e

    async def _execute_whois_query(self, domain: str, server: str) -> str:
        """
        Execute the actual WHOIS query via socket.

        Args:
            domain: Domain to query
            server: WHOIS server hostname

        Returns:
            Raw WHOIS response as string
        """
        loop = asyncio.get_running_loop()

        def _sync_query() -> str:
            with socket.create_connection((server, WHOIS_PORT), timeout=self._timeout) as sock:
                sock.sendall(f"{domain}\r\n".encode("utf-8"))

                response_parts: list[bytes] = []
                while True:
                    data = sock.recv(4096)
                    if not data:
                        break
                    response_parts.append(data)

                return b"".join(response_parts).decode("utf-8", errors="replace")

        return await asyncio.wait_for(
            loop.run_in_executor(None, _sync_query),
            timeout=self._timeout,
        )

    def _check_response(
        self,
        domain: str,
        server: str,
        raw_response: str,
        elapsed_ms: float,
    ) -> WHOISResponse:
        if not raw_response or not raw_response.strip():
            raise TransportError(
                code=WHOISErrorCode.EMPTY_RESPONSE.value,
                message=f"Empty WHOIS response from {server}",
                details={"domain": domain, "server": server},
            )

        if detect_rate_limit(raw_response):
            self._log_error("WHOIS rate limited", domain, server)
            raise RateLimitError(
                code=WHOISErrorCode.RATE_LIMITED.value,
                message=f"Rate limited by {server}",
                details={"domain": domain, "server": server},
            )

        return WHOISResponse(
            domain=domain,
            server=server,
            raw_response=raw_response,
            response_time_ms=elapsed_ms,
        )

    def _get_simulated_response(self, domain: str) -> str:
        """
        Return a simulated response for testing.

        In simulation mode, domains starting with 'available-' get a
        no-match answer, others a registered record.
        """
        sld = domain.split(".")[0] if "." in domain else domain

        if sld.startswith("available-"):
            return f"[SIMULATED]\nNo match for \"{domain.upper()}\".\n"
        return (
            "[SIMULATED]\n"
            f"Domain Name: {domain.upper()}\n"
            "Registrar: Example Registrar\n"
            "Name Server: NS1.EXAMPLE.COM\n"
            "Creation Date: 2020-01-01\n"
        )
