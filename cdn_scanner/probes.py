"""
Latency probe strategies

Every strategy measures how long one address takes to give a usable
answer. attempt() never raises: timeouts and connection failures come
back as a no-response Sample.
"""

import abc
import asyncio
import logging
import ssl
import time
from ipaddress import IPv4Address
from typing import Dict, List, Optional, Sequence, Type, Union

import aiohttp
import certifi
import websockets

from .config import ProbeKind, ScannerConfig, DEFAULT_SNI
from .models import Sample

logger = logging.getLogger(__name__)

Address = Union[IPv4Address, str]


class ProbeStrategy(abc.ABC):
    """Base class for one way of measuring an address"""

    name = "probe"

    def __init__(self, sni: str = DEFAULT_SNI, port: int = 443):
        self.sni = sni
        self.port = port

    async def attempt(self, address: Address, timeout_ms: int) -> Sample:
        """
        Probe one address once

        Args:
            address: Target IPv4 address
            timeout_ms: Time budget for the attempt

        Returns:
            Sample with the latency, or a no-response Sample
        """
        ip = str(address)
        start = time.monotonic()
        try:
            await asyncio.wait_for(self._probe(ip, timeout_ms), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            logger.debug(f"{self.name} probe of {ip}: timeout after {timeout_ms}ms")
            return Sample.no_response(self.name)
        except Exception as e:
            elapsed = self._elapsed_ms(start)
            if self._accept_error(elapsed, e):
                logger.debug(f"{self.name} probe of {ip}: fast error accepted ({elapsed}ms, {type(e).__name__})")
                return Sample(elapsed, self.name)
            logger.debug(f"{self.name} probe of {ip}: {type(e).__name__}: {e}")
            return Sample.no_response(self.name)

        elapsed = self._elapsed_ms(start)
        if elapsed >= timeout_ms:
            return Sample.no_response(self.name)
        return Sample(elapsed, self.name)

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)

    def _accept_error(self, elapsed_ms: int, error: Exception) -> bool:
        """Whether a failed attempt still proves reachability"""
        return False

    @abc.abstractmethod
    async def _probe(self, ip: str, timeout_ms: int) -> None:
        """Complete successfully when the address answered, raise otherwise"""

    def _ssl_context(self, verify: bool = True) -> ssl.SSLContext:
        context = ssl.create_default_context(cafile=certifi.where())
        if not verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def __repr__(self) -> str:
        return f"{type(self).__name__}(sni={self.sni!r}, port={self.port})"


class ImageLoadProbe(ProbeStrategy):
    """
    HTTPS fetch of a small resource with a cache-busting parameter

    Any completed HTTP response counts, whatever its status code: getting
    an answer at all is the reachability signal, the payload is ignored.
    The certificate is not checked against the SNI name, so hosts that
    merely answer on the port are accepted too.
    """

    name = ProbeKind.IMAGE.value
    method = "GET"

    def __init__(self, sni: str = DEFAULT_SNI, port: int = 443, path: str = "/cdn-cgi/trace"):
        super().__init__(sni, port)
        self.path = path if path.startswith('/') else '/' + path

    def build_url(self, ip: str) -> str:
        netloc = ip if self.port == 443 else f"{ip}:{self.port}"
        return f"https://{netloc}{self.path}?t={int(time.time() * 1000)}"

    async def _probe(self, ip: str, timeout_ms: int) -> None:
        connector = aiohttp.TCPConnector(ssl=self._ssl_context(verify=False), force_close=True)
        timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000)
        async with aiohttp.ClientSession(connector=connector, timeout=timeout) as session:
            async with session.request(
                    self.method,
                    self.build_url(ip),
                    headers={"Host": self.sni, "Cache-Control": "no-cache"},
                    server_hostname=self.sni,
                    allow_redirects=False,
            ) as response:
                logger.debug(f"{self.name} probe of {ip}: HTTP {response.status}")


class HttpHeadProbe(ImageLoadProbe):
    """HEAD request on the site root, same success rule as the image probe"""

    name = ProbeKind.HTTP_HEAD.value
    method = "HEAD"

    def __init__(self, sni: str = DEFAULT_SNI, port: int = 443, path: str = "/"):
        super().__init__(sni, port, path)


class SecureSocketProbe(ProbeStrategy):
    """
    Secure WebSocket connection attempt

    An established connection is a success. An error that arrives within
    fast_error_ms is also taken as a success: a quick rejection still means
    something is listening. Slower failures are treated as no response.
    """

    name = ProbeKind.WEBSOCKET.value

    def __init__(self, sni: str = DEFAULT_SNI, port: int = 443, fast_error_ms: int = 500):
        super().__init__(sni, port)
        self.fast_error_ms = fast_error_ms

    def build_url(self, ip: str) -> str:
        netloc = ip if self.port == 443 else f"{ip}:{self.port}"
        return f"wss://{netloc}/"

    async def _probe(self, ip: str, timeout_ms: int) -> None:
        ws = await websockets.connect(
            self.build_url(ip),
            ssl=self._ssl_context(verify=False),
            server_hostname=self.sni,
            open_timeout=None,
            close_timeout=1,
        )
        await ws.close()

    def _accept_error(self, elapsed_ms: int, error: Exception) -> bool:
        return elapsed_ms < self.fast_error_ms


class TlsHandshakeProbe(ProbeStrategy):
    """Completed TLS handshake with the configured SNI"""

    name = ProbeKind.TLS.value

    async def _probe(self, ip: str, timeout_ms: int) -> None:
        reader, writer = await asyncio.open_connection(
            ip, self.port, ssl=self._ssl_context(verify=False), server_hostname=self.sni
        )
        writer.close()
        await writer.wait_closed()


class TcpConnectProbe(ProbeStrategy):
    """Plain TCP connect-and-close"""

    name = ProbeKind.TCP.value

    async def _probe(self, ip: str, timeout_ms: int) -> None:
        reader, writer = await asyncio.open_connection(ip, self.port)
        writer.close()
        await writer.wait_closed()


PROBE_TYPES: Dict[ProbeKind, Type[ProbeStrategy]] = {
    ProbeKind.IMAGE: ImageLoadProbe,
    ProbeKind.WEBSOCKET: SecureSocketProbe,
    ProbeKind.HTTP_HEAD: HttpHeadProbe,
    ProbeKind.TLS: TlsHandshakeProbe,
    ProbeKind.TCP: TcpConnectProbe,
}


def create_probe(kind: ProbeKind, config: Optional[ScannerConfig] = None) -> ProbeStrategy:
    """Instantiate one strategy from the scanner settings"""
    config = config or ScannerConfig()
    if kind is ProbeKind.IMAGE:
        return ImageLoadProbe(config.sni, config.port, config.probe_path)
    if kind is ProbeKind.WEBSOCKET:
        return SecureSocketProbe(config.sni, config.port, config.fast_error_ms)
    return PROBE_TYPES[kind](config.sni, config.port)


def build_strategies(kinds: Sequence[ProbeKind], config: Optional[ScannerConfig] = None) -> List[ProbeStrategy]:
    """Build the ordered fallback chain"""
    return [create_probe(kind, config) for kind in kinds]
