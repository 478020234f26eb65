"""
Backend cascade: probe detector backends in priority order and commit to
the first one that initializes. Selection happens once per session.
"""
from __future__ import annotations
from typing import List, Optional, Sequence
import asyncio
import logging

from core.backends import DetectorBackend, SimulatedBackend
from core.config import Settings
from core.errors import BackendUnavailableError
from core.models import DetectorKind, ProbeResult

logger = logging.getLogger(__name__)

SIMULATION_NOTICE = "Could not load ML libraries. Using simulation mode."


class ActiveBackend:
    """The committed backend plus what happened while probing."""
    def __init__(self, backend: DetectorBackend, probe_log: List[ProbeResult]):
        self.backend = backend
        self.probe_log = probe_log

    @property
    def kind(self) -> DetectorKind:
        return self.backend.kind

    @property
    def simulated(self) -> bool:
        return self.backend.kind == "simulated"

    @property
    def notice(self) -> Optional[str]:
        # Only worth telling the user when real backends were tried and lost
        if self.simulated and any(not p.ok for p in self.probe_log):
            return SIMULATION_NOTICE
        return None


class CascadeSelector:
    def __init__(self, candidates: Sequence[DetectorBackend], settings: Settings):
        self.s = settings
        self.candidates = list(candidates)
        if not self.candidates or self.candidates[-1].kind != "simulated":
            self.candidates.append(SimulatedBackend(settings))
        self._active: Optional[ActiveBackend] = None
        self._lock = asyncio.Lock()

    @property
    def active(self) -> Optional[ActiveBackend]:
        return self._active

    async def select(self) -> ActiveBackend:
        """Run the cascade once; later calls return the committed backend."""
        async with self._lock:
            if self._active is None:
                self._active = await self._run()
            return self._active

    async def _run(self) -> ActiveBackend:
        probe_log: List[ProbeResult] = []
        for backend in self.candidates:
            logger.info(f"[cascade] probing {backend.kind} ({backend.name})")
            try:
                await self._probe(backend)
            except BackendUnavailableError as e:
                logger.warning(f"[cascade] {backend.kind} unavailable: {e}")
                probe_log.append(ProbeResult(backend=backend.kind, ok=False, reason=str(e)))
                continue
            probe_log.append(ProbeResult(backend=backend.kind, ok=True))
            active = ActiveBackend(backend, probe_log)
            logger.info(f"[cascade] committed to {backend.kind} ({backend.name})")
            if active.notice:
                logger.warning(f"[cascade] {active.notice}")
            return active
        raise RuntimeError("No detector backend could be initialized")

    async def _probe(self, backend: DetectorBackend) -> None:
        timeout = self.s.BACKEND_INIT_TIMEOUT
        try:
            ok = await asyncio.wait_for(backend.initialize(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise BackendUnavailableError(f"initialize timed out after {timeout}s") from e
        except Exception as e:
            raise BackendUnavailableError(f"{type(e).__name__}: {e}") from e
        if not ok:
            raise BackendUnavailableError("initialize reported unavailable")
