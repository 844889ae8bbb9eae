import asyncio
import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cdn_scanner.models import Sample
from cdn_scanner.probes import ProbeStrategy


class StubProbe(ProbeStrategy):
    """Answers with a fixed latency (None = never answers) without touching the network"""

    def __init__(self, latency=None, delay=0.0, name="stub"):
        super().__init__()
        self.latency = latency
        self.delay = delay
        self.name = name
        self.calls = []

    async def attempt(self, address, timeout_ms):
        self.calls.append(str(address))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.latency is None:
            return Sample.no_response(self.name)
        return Sample(self.latency, self.name)

    async def _probe(self, ip, timeout_ms):
        return None


class ScriptedProbe(StubProbe):
    """Returns latencies from a per-address script, one value per call"""

    def __init__(self, script, name="scripted"):
        super().__init__(name=name)
        self.script = {k: list(v) for k, v in script.items()}

    async def attempt(self, address, timeout_ms):
        self.calls.append(str(address))
        await asyncio.sleep(0)
        values = self.script.get(str(address), [])
        latency = values.pop(0) if values else None
        if latency is None:
            return Sample.no_response(self.name)
        return Sample(latency, self.name)
