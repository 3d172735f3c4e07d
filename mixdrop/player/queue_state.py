"""
État du lecteur : mix en cours, file d'attente et visibilité des panneaux.

Chaque transition est une fonction pure qui retourne un nouvel instantané ;
le PlayerStore conserve l'instantané courant et notifie ses abonnés.
Seul « quoi jouer » est modélisé, pas le transport audio (lecture, volume).
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, Callable, List, Optional, Tuple

# branché sur les handlers du logger "mixdrop" sans importer la couche API
logger = logging.getLogger("mixdrop.player")


def mix_identity(mix: Any) -> Any:
    """Identité d'un mix : son `id`, qu'il soit un dict JSON ou un objet."""
    if isinstance(mix, Mapping):
        return mix.get("id")
    return getattr(mix, "id", None)


@dataclass(frozen=True)
class PlayerState:
    current_mix: Optional[Any] = None
    queue: Tuple[Any, ...] = ()
    is_player_open: bool = False
    is_queue_open: bool = False


INITIAL_STATE = PlayerState()


def play_mix(state: PlayerState, mix: Any) -> PlayerState:
    return replace(state, current_mix=mix, is_player_open=True)


def add_to_queue(state: PlayerState, mix: Any) -> PlayerState:
    # ajouter à la file ouvre le lecteur, même sans mix en cours
    identity = mix_identity(mix)
    if any(mix_identity(queued) == identity for queued in state.queue):
        return replace(state, is_player_open=True)
    return replace(state, queue=state.queue + (mix,), is_player_open=True)


def remove_from_queue(state: PlayerState, index: int) -> PlayerState:
    return replace(state, queue=tuple(m for i, m in enumerate(state.queue) if i != index))


def close_player(state: PlayerState) -> PlayerState:
    return INITIAL_STATE


def play_next(state: PlayerState) -> PlayerState:
    if not state.queue:
        return close_player(state)
    return replace(state, current_mix=state.queue[0], queue=state.queue[1:], is_player_open=True)


def reorder_queue(state: PlayerState, from_index: int, to_index: int) -> PlayerState:
    size = len(state.queue)
    if not (0 <= from_index < size and 0 <= to_index < size):
        return state
    items: List[Any] = list(state.queue)
    moved = items.pop(from_index)
    items.insert(to_index, moved)
    return replace(state, queue=tuple(items))


def clear_queue(state: PlayerState) -> PlayerState:
    return replace(state, queue=())


def toggle_queue(state: PlayerState) -> PlayerState:
    return replace(state, is_queue_open=not state.is_queue_open)


Listener = Callable[[PlayerState], None]


class PlayerStore:
    """Conteneur d'état du lecteur, détenu par la composition racine de l'application."""

    def __init__(self, state: PlayerState = INITIAL_STATE):
        self._state = state
        self._listeners: List[Listener] = []

    @property
    def state(self) -> PlayerState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def dispatch(self, transition: Callable[..., PlayerState], *args) -> PlayerState:
        new_state = transition(self._state, *args)
        if new_state == self._state:
            return self._state
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception as e:
                logger.error(f"[PLAYER] Erreur dans un abonné: {e}")
        return new_state

    def play_mix(self, mix: Any) -> PlayerState:
        return self.dispatch(play_mix, mix)

    def add_to_queue(self, mix: Any) -> PlayerState:
        return self.dispatch(add_to_queue, mix)

    def remove_from_queue(self, index: int) -> PlayerState:
        return self.dispatch(remove_from_queue, index)

    def play_next(self) -> PlayerState:
        return self.dispatch(play_next)

    def reorder_queue(self, from_index: int, to_index: int) -> PlayerState:
        return self.dispatch(reorder_queue, from_index, to_index)

    def clear_queue(self) -> PlayerState:
        return self.dispatch(clear_queue)

    def close_player(self) -> PlayerState:
        return self.dispatch(close_player)

    def toggle_queue(self) -> PlayerState:
        return self.dispatch(toggle_queue)

    def on_media_ended(self) -> PlayerState:
        """Fin de lecture de l'élément audio : passage au mix suivant."""
        return self.play_next()
