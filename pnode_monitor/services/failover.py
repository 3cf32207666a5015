# pnode_monitor/services/failover.py
"""
Failover secuencial sobre una lista fija y ordenada de endpoints pRPC.

El recorrido es una máquina de estados explícita:

    Pending(remaining, failures) --step--> Pending | Succeeded | Exhausted

`step()` hace un único intento (más la espera entre intentos si queda otro endpoint),
de modo que el orden, el corto-circuito y las esperas se pueden probar sin reloj real.
Los endpoints nunca se consultan en paralelo.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Sequence, Tuple, Union

from ..schemas.common import NodeRecord
from .errors import AllEndpointsFailed, EndpointFailure
from .prpc import RosterFetch

Sleep = Callable[[float], Awaitable[None]]

DEFAULT_DELAY = 0.75


@dataclass(frozen=True)
class Pending:
    remaining: Tuple[str, ...]
    failures: Tuple[EndpointFailure, ...] = ()


@dataclass(frozen=True)
class Succeeded:
    endpoint: str
    roster: List[NodeRecord] = field(default_factory=list)
    failures: Tuple[EndpointFailure, ...] = ()


@dataclass(frozen=True)
class Exhausted:
    failures: Tuple[EndpointFailure, ...]


FailoverState = Union[Pending, Succeeded, Exhausted]


class FailoverFetcher:

    def __init__(
        self,
        endpoints: Sequence[str],
        fetch_roster: RosterFetch,
        delay_seconds: float = DEFAULT_DELAY,
        sleep: Sleep = asyncio.sleep,
    ):
        if not endpoints:
            raise ValueError("FailoverFetcher needs at least one endpoint")
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self.endpoints: Tuple[str, ...] = tuple(endpoints)
        self._fetch_roster = fetch_roster
        self._delay = delay_seconds
        self._sleep = sleep
        self._logger = logging.getLogger(self.__class__.__name__)

    def start(self) -> Pending:
        return Pending(remaining=self.endpoints)

    async def step(self, state: FailoverState) -> FailoverState:
        """Avanza un intento. Estados terminales se devuelven sin cambios."""
        if not isinstance(state, Pending):
            return state
        if not state.remaining:
            return Exhausted(failures=state.failures)

        endpoint, rest = state.remaining[0], state.remaining[1:]
        try:
            roster = await self._fetch_roster(endpoint)
        except Exception as ex:
            reason = _describe(ex)
            self._logger.warning(f"Endpoint {endpoint} failed: {reason}")
            failures = state.failures + (EndpointFailure(endpoint=endpoint, reason=reason),)
            if not rest:
                return Exhausted(failures=failures)
            await self._sleep(self._delay)
            return Pending(remaining=rest, failures=failures)

        if state.failures:
            self._logger.info(f"Endpoint {endpoint} answered after {len(state.failures)} failure(s)")
        return Succeeded(endpoint=endpoint, roster=roster, failures=state.failures)

    async def run(self) -> Union[Succeeded, Exhausted]:
        state: FailoverState = self.start()
        while isinstance(state, Pending):
            state = await self.step(state)
        return state

    async def fetch(self) -> List[NodeRecord]:
        """Roster del primer endpoint que responda; AllEndpointsFailed si ninguno lo hace."""
        outcome = await self.run()
        if isinstance(outcome, Exhausted):
            self._logger.error(f"All {len(outcome.failures)} pRPC endpoints failed")
            raise AllEndpointsFailed(list(outcome.failures))
        return outcome.roster


def _describe(ex: Exception) -> str:
    text = str(ex)
    return f"{type(ex).__name__}: {text}" if text else type(ex).__name__
