"""
Mixins a class can opt into by listing them as bases.

    class Session(Disposable, StateMachine[TState]):
        ...

The editor toggles them on and off; the extractor reads them back from the
class bases.
"""

from typing import Any, Callable, Dict, Generic, List, Mapping, TypeVar

from classgraph.logging_config import logger
from classgraph.runtime.markers import action

S = TypeVar("S")

# state -> {allowed next state -> True}
StateMachineTransitions = Dict[S, Dict[S, bool]]


class Disposable:
    """Collects cleanup callbacks and runs them once, in reverse order."""

    def on_dispose(self, callback: Callable[[], Any]) -> Callable[[], Any]:
        self.__dict__.setdefault("_dispose_callbacks", []).append(callback)
        return callback

    def dispose(self) -> None:
        callbacks: List[Callable[[], Any]] = self.__dict__.pop("_dispose_callbacks", [])
        for callback in reversed(callbacks):
            callback()


class Resolver:
    """Dispatch on a key to one of several handlers."""

    def resolve(self, key: Any, handlers: Mapping[Any, Callable[[], Any]]) -> Any:
        """
        Call the handler registered for key.

        Raises:
            KeyError: If no handler matches and there is no "*" fallback
        """
        if key in handlers:
            return handlers[key]()
        if "*" in handlers:
            return handlers["*"]()
        raise KeyError(f"No handler for {key!r}")


class StateMachine(Generic[S]):
    """
    Finite state machine over the `state` attribute. Subclasses declare
    `state` (usually observable) and `transitions`.
    """

    state: S
    transitions: StateMachineTransitions

    def can_transition(self, state: S) -> bool:
        return bool(self.transitions.get(self.state, {}).get(state, False))

    @action
    def transition(self, state: S) -> bool:
        """Move to state if allowed. Returns whether the state changed."""
        if not self.can_transition(state):
            logger.debug(f"{type(self).__name__}: no transition {self.state!r} -> {state!r}")
            return False
        self.state = state
        return True

    def matches(self, handlers: Mapping[S, Callable[[], Any]]) -> Any:
        """Call the handler for the current state, if any."""
        handler = handlers.get(self.state)
        return handler() if handler is not None else None


class UI:
    """Marks a class as a user interface component."""


__all__ = ["Disposable", "Resolver", "StateMachine", "StateMachineTransitions", "UI"]
