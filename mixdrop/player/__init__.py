from .queue_state import (
    PlayerState,
    PlayerStore,
    INITIAL_STATE,
    mix_identity,
    play_mix,
    add_to_queue,
    remove_from_queue,
    play_next,
    reorder_queue,
    clear_queue,
    close_player,
    toggle_queue,
)

__all__ = [
    "PlayerState",
    "PlayerStore",
    "INITIAL_STATE",
    "mix_identity",
    "play_mix",
    "add_to_queue",
    "remove_from_queue",
    "play_next",
    "reorder_queue",
    "clear_queue",
    "close_player",
    "toggle_queue",
]
