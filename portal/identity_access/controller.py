"""
Event-driven wiring of session source, role resolver and route guard.

An `AccessController` serves one mounted screen in a long-lived client: it
re-evaluates the guard whenever the session changes or a role commits, and
tells listeners only when the decision actually changed. Role lookups start
only on identity changes; re-evaluations reuse the resolver cache.
"""
from __future__ import annotations

from typing import Callable, List, Optional

from .guard import DEFAULT_TARGETS, Decision, RedirectTargets, RouteRequirement, evaluate_route_guard
from .resolver import RoleResolver
from .session_source import SessionSource, SessionState


DecisionListener = Callable[[Decision], None]


class AccessController:
    def __init__(
        self,
        session_source: SessionSource,
        resolver: RoleResolver,
        requirement: Optional[RouteRequirement],
        *,
        targets: RedirectTargets = DEFAULT_TARGETS,
    ):
        self._session_source = session_source
        self._resolver = resolver
        self._requirement = requirement
        self._targets = targets
        self._decision: Optional[Decision] = None
        self._listeners: List[DecisionListener] = []
        self._unsubscribers: List[Callable[[], None]] = []

    @property
    def decision(self) -> Decision:
        if self._decision is None:
            return self.evaluate()
        return self._decision

    def start(self) -> Decision:
        """Subscribe to session and role changes and run the first evaluation."""
        if not self._unsubscribers:
            self._unsubscribers.append(self._session_source.on_change(self._on_session_change))
            self._unsubscribers.append(self._resolver.subscribe(self._on_role_change))
        self._on_session_change(self._session_source.get_session())
        return self.decision

    def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def subscribe(self, listener: DecisionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def navigate(self, requirement: Optional[RouteRequirement]) -> Decision:
        """Switch to another route's requirement and re-evaluate."""
        self._requirement = requirement
        return self.evaluate()

    def evaluate(self) -> Decision:
        session = self._session_source.get_session()
        if session.pending:
            role = None
        else:
            # Idempotent for an unchanged identity: no second lookup.
            role = self._resolver.resolve(session.identity)
        decision = evaluate_route_guard(session, role, self._requirement, targets=self._targets)
        if decision != self._decision:
            self._decision = decision
            for listener in list(self._listeners):
                listener(decision)
        return decision

    # --- Callbacks ---------------------------------------------------------------

    def _on_session_change(self, _state: SessionState) -> None:
        self.evaluate()

    def _on_role_change(self) -> None:
        self.evaluate()
