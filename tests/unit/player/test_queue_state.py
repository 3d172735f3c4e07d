"""
Tests de l'état du lecteur et de la file d'attente.
"""
from mixdrop.player import (
    INITIAL_STATE,
    PlayerState,
    PlayerStore,
    add_to_queue,
    clear_queue,
    close_player,
    play_mix,
    play_next,
    remove_from_queue,
    reorder_queue,
    toggle_queue,
)

A = {"id": 1, "title": "A"}
B = {"id": 2, "title": "B"}
C = {"id": 3, "title": "C"}


def queued(*mixes, current=None):
    return PlayerState(current_mix=current, queue=tuple(mixes), is_player_open=True)


class TestTransitions:

    def test_play_mix_opens_player_and_keeps_queue(self):
        state = play_mix(queued(B, C), A)

        assert state.current_mix == A
        assert state.is_player_open is True
        assert state.queue == (B, C)

    def test_add_to_queue_opens_player(self):
        state = add_to_queue(INITIAL_STATE, A)

        assert state.queue == (A,)
        assert state.is_player_open is True
        assert state.current_mix is None

    def test_add_to_queue_ignores_duplicates(self):
        """Un mix déjà en file n'est pas ajouté une seconde fois."""
        state = add_to_queue(queued(A), {"id": 1, "title": "A (copie)"})

        assert state.queue == (A,)

    def test_remove_from_queue(self):
        assert remove_from_queue(queued(A, B, C), 1).queue == (A, C)

    def test_remove_out_of_range_is_noop(self):
        state = queued(A, B)

        assert remove_from_queue(state, 5) == state

    def test_play_next_takes_head_of_queue(self):
        state = play_next(queued(B, C, current=A))

        assert state.current_mix == B
        assert state.queue == (C,)
        assert state.is_player_open is True

    def test_play_next_on_empty_queue_closes_player(self):
        state = play_next(queued(current=A))

        assert state == INITIAL_STATE

    def test_reorder_queue(self):
        assert reorder_queue(queued(A, B, C), 0, 2).queue == (B, C, A)
        assert reorder_queue(queued(A, B, C), 2, 0).queue == (C, A, B)

    def test_reorder_with_invalid_indices_returns_same_state(self):
        state = queued(A, B)

        assert reorder_queue(state, -1, 0) is state
        assert reorder_queue(state, 0, 2) is state

    def test_clear_queue_keeps_current_mix(self):
        state = clear_queue(queued(B, current=A))

        assert state.queue == ()
        assert state.current_mix == A

    def test_close_player_resets_everything(self):
        state = toggle_queue(queued(B, current=A))

        assert close_player(state) == INITIAL_STATE

    def test_toggle_queue(self):
        assert toggle_queue(INITIAL_STATE).is_queue_open is True
        assert toggle_queue(toggle_queue(INITIAL_STATE)).is_queue_open is False

    def test_transitions_do_not_mutate_input(self):
        state = queued(A, B)

        add_to_queue(state, C)
        remove_from_queue(state, 0)

        assert state.queue == (A, B)


class TestPlayerStore:

    def test_listeners_notified_on_change(self):
        store = PlayerStore()
        seen = []
        store.subscribe(seen.append)

        store.play_mix(A)
        store.add_to_queue(B)

        assert [s.current_mix for s in seen] == [A, A]
        assert seen[-1].queue == (B,)

    def test_no_notification_without_change(self):
        store = PlayerStore()
        seen = []
        store.subscribe(seen.append)

        store.reorder_queue(0, 1)
        store.clear_queue()

        assert seen == []

    def test_unsubscribe(self):
        store = PlayerStore()
        seen = []
        unsubscribe = store.subscribe(seen.append)

        unsubscribe()
        store.play_mix(A)

        assert seen == []

    def test_failing_listener_does_not_break_dispatch(self):
        store = PlayerStore()
        seen = []

        def broken(state):
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.subscribe(seen.append)
        store.play_mix(A)

        assert store.state.current_mix == A
        assert len(seen) == 1

    def test_media_ended_advances_queue(self):
        """La fin de lecture enchaîne sur le mix suivant puis ferme le lecteur."""
        store = PlayerStore()
        store.play_mix(A)
        store.add_to_queue(B)

        store.on_media_ended()
        assert store.state.current_mix == B
        assert store.state.queue == ()

        store.on_media_ended()
        assert store.state == INITIAL_STATE
