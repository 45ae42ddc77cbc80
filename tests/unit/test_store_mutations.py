# pylint: disable=missing-module-docstring,missing-function-docstring

from dataclasses import replace

from store.mutations import (
    add_entry,
    clear_backlog,
    mark_played,
    remove_entry,
    reorder_backlog,
    update_config,
)
from store.state_dataclass import PileupState, SessionConfig


def make_state(*callsigns: str) -> PileupState:
    state = PileupState()
    for callsign in callsigns:
        state = add_entry(state, callsign, submitted_by=1, submitted_at="t")
    return state


def ids(state: PileupState) -> list[int]:
    return [entry.id for entry in state.backlog]


# ---------------------------------------------------------------------
# add
# ---------------------------------------------------------------------

def test_add_normalizes_callsign():
    state = make_state("  w1aw ")

    assert state.backlog[0].callsign == "W1AW"
    assert state.backlog[0].submitted_by == 1


def test_add_rejects_empty_and_whitespace():
    state = make_state("A")

    assert add_entry(state, "", submitted_by=1, submitted_at="t") is state
    assert add_entry(state, "   ", submitted_by=1, submitted_at="t") is state
    assert add_entry(state, None, submitted_by=1, submitted_at="t") is state


def test_ids_are_unique_even_in_the_same_instant():
    state = make_state(*["K1ABC"] * 50)

    assert len(set(ids(state))) == 50
    assert ids(state) == list(range(1, 51))


def test_ids_are_never_reused_after_removal():
    state = make_state("A", "B")
    state = remove_entry(state, 2)
    state = clear_backlog(state)
    state = add_entry(state, "C", submitted_by=1, submitted_at="t")

    assert ids(state) == [3]


# ---------------------------------------------------------------------
# remove / mark_played idempotence
# ---------------------------------------------------------------------

def test_remove_absent_id_leaves_state_untouched():
    state = make_state("A", "B")

    assert remove_entry(state, 99) is state
    assert mark_played(state, 99) is state


def test_mark_played_is_removal():
    state = make_state("A", "B", "C")

    assert ids(mark_played(state, 2)) == [1, 3]
    assert mark_played(state, 2) == remove_entry(state, 2)


def test_clear_is_unconditional():
    assert clear_backlog(make_state("A", "B")).backlog == ()
    assert clear_backlog(PileupState()).backlog == ()


# ---------------------------------------------------------------------
# reorder
# ---------------------------------------------------------------------

def test_reorder_partial_appends_unmentioned_in_prior_order():
    # a=1, b=2, c=3
    state = make_state("A", "B", "C")

    assert ids(reorder_backlog(state, [3, 1])) == [3, 1, 2]


def test_reorder_ignores_unknown_and_duplicate_ids():
    state = make_state("A", "B", "C")

    assert ids(reorder_backlog(state, [42, 2, 2, 3, 1])) == [2, 3, 1]


def test_reorder_empty_request_keeps_order():
    state = make_state("A", "B", "C")

    assert ids(reorder_backlog(state, [])) == [1, 2, 3]


def test_reorder_never_loses_entries():
    state = make_state("A", "B", "C", "D")

    reordered = reorder_backlog(state, [4])
    assert sorted(ids(reordered)) == [1, 2, 3, 4]
    assert ids(reordered) == [4, 1, 2, 3]


# ---------------------------------------------------------------------
# config merge
# ---------------------------------------------------------------------

def test_out_of_bound_wpm_is_dropped():
    config = SessionConfig()

    new_config, changed = update_config(config, {"wpm": 999})

    assert new_config is config
    assert changed == ()


def test_valid_wpm_changes_only_wpm():
    config = SessionConfig()

    new_config, changed = update_config(config, {"wpm": 25})

    assert changed == ("wpm",)
    assert new_config == replace(config, wpm=25)


def test_mixed_partial_merges_valid_fields_only():
    config = SessionConfig()

    new_config, changed = update_config(
        config,
        {"wpm": 30, "ditFrequency": 50, "dahFrequency": 700, "bogus": 1},
    )

    assert changed == ("wpm", "dahFrequency")
    assert new_config.wpm == 30
    assert new_config.dah_frequency_hz == 700
    assert new_config.dit_frequency_hz == config.dit_frequency_hz
    assert new_config.delay_between_items_ms == config.delay_between_items_ms


def test_same_value_is_not_a_change():
    config = SessionConfig()

    new_config, changed = update_config(config, {"wpm": config.wpm})

    assert new_config is config
    assert changed == ()


def test_non_numeric_and_bool_values_are_dropped():
    config = SessionConfig()

    _, changed = update_config(
        config,
        {"wpm": "25", "delayBetweenItems": True, "ditFrequency": float("nan")},
    )

    assert changed == ()


def test_bounds_are_inclusive():
    config = SessionConfig()

    new_config, _ = update_config(
        config,
        {"wpm": 5, "delayBetweenItems": 10_000, "ditFrequency": 200, "dahFrequency": 1500},
    )

    assert new_config == SessionConfig(
        wpm=5,
        delay_between_items_ms=10_000,
        dit_frequency_hz=200,
        dah_frequency_hz=1500,
    )
