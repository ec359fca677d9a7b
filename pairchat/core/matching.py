"""Available pool and pairing relation for paired deployments.

Each identifier known to the engine carries an explicit
:class:`~pairchat.core.state_machine.ParticipantState`. An identifier is in
``pool`` exactly when its state is AVAILABLE, and ``A`` is PAIRED with ``B``
exactly when ``B`` is PAIRED with ``A``.

Every mutation ends with a pairing pass: the pool is scanned in order and
each member still waiting is matched with the first other member still
waiting. The result is greedy and order-stable, not a maximum matching.
"""
import logging
from typing import Dict, List, Optional, Tuple

from pairchat.core.registry import ConnectionRegistry
from pairchat.core.state_machine import AVAILABLE, UNREGISTERED, ParticipantState, paired_with
from pairchat.network import protocol

log = logging.getLogger(__name__)

Pair = Tuple[str, str]


class MatchingEngine:
    def __init__(self, registry: ConnectionRegistry):
        self._registry = registry
        self._states: Dict[str, ParticipantState] = {}
        self._pool: List[str] = []

    # --- queries ---

    def state_of(self, identifier: str) -> ParticipantState:
        return self._states.get(identifier, UNREGISTERED)

    def partner_of(self, identifier: str) -> Optional[str]:
        return self.state_of(identifier).partner

    @property
    def pool(self) -> List[str]:
        return list(self._pool)

    def pairs(self) -> List[Pair]:
        seen = set()
        result = []
        for identifier, state in self._states.items():
            if state.is_paired and identifier not in seen:
                seen.update((identifier, state.partner))
                result.append((identifier, state.partner))
        return result

    # --- mutations ---

    def join_pool(self, identifier: str) -> List[Pair]:
        state = self.state_of(identifier)
        if state.is_paired:
            return []
        if not state.is_available:
            self._states[identifier] = AVAILABLE
            self._pool.append(identifier)
        return self._pairing_pass()

    def skip(self, identifier: str) -> List[Pair]:
        partner = self.partner_of(identifier)
        if partner is None:
            return []
        self._states[identifier] = AVAILABLE
        self._states[partner] = AVAILABLE
        self._pool.append(identifier)
        self._pool.append(partner)
        log.info(f"{identifier} skipped {partner}")
        self._registry.send(partner, protocol.skipped())  # best effort
        return self._pairing_pass()

    def disconnect(self, identifier: str) -> List[Pair]:
        state = self._states.pop(identifier, UNREGISTERED)
        if state.is_available:
            self._pool.remove(identifier)
        elif state.is_paired:
            partner = state.partner
            self._states[partner] = AVAILABLE
            self._pool.append(partner)
            log.info(f"{identifier} left, {partner} returned to the pool")
            self._registry.send(partner, protocol.partner_left())  # best effort
        return self._pairing_pass()

    def _pairing_pass(self) -> List[Pair]:
        formed = []
        for candidate in list(self._pool):
            if candidate not in self._pool:
                continue  # matched earlier in this pass
            partner = next((other for other in self._pool if other != candidate), None)
            if partner is None:
                continue
            self._pool.remove(candidate)
            self._pool.remove(partner)
            self._states[candidate] = paired_with(partner)
            self._states[partner] = paired_with(candidate)
            self._registry.send(candidate, protocol.paired(partner))
            self._registry.send(partner, protocol.paired(candidate))
            log.info(f"Paired {candidate} <-> {partner}")
            formed.append((candidate, partner))
        return formed
