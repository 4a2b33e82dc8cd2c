"""Tests for entrant seeding."""
import random

from engine.services.seeding import Entrant, seed_entrants


def test_explicit_seeds_sorted_ascending():
    entrants = [Entrant(id="c", seed=3), Entrant(id="a", seed=1), Entrant(id="b", seed=2)]
    assert [e.id for e in seed_entrants(entrants)] == ["a", "b", "c"]


def test_unseeded_go_last_in_input_order():
    entrants = [
        Entrant(id="x"),
        Entrant(id="top", seed=1),
        Entrant(id="y"),
        Entrant(id="second", seed=2),
    ]
    assert [e.id for e in seed_entrants(entrants)] == ["top", "second", "x", "y"]


def test_shuffle_is_reproducible_with_rng():
    entrants = [Entrant(id=f"p{i}") for i in range(16)]
    first = seed_entrants(entrants, random.Random(42))
    second = seed_entrants(entrants, random.Random(42))
    assert first == second
    assert sorted(e.id for e in first) == sorted(e.id for e in entrants)


def test_shuffle_without_rng_keeps_everyone():
    entrants = [Entrant(id=f"p{i}") for i in range(5)]
    result = seed_entrants(entrants)
    assert {e.id for e in result} == {e.id for e in entrants}
    assert len(result) == 5
