from __future__ import annotations

from slotplanner.services.randomizer import MODULUS, DeterministicRandom


def test_first_values_follow_recurrence() -> None:
    assert DeterministicRandom(1).next_int() == 1103527590
    assert DeterministicRandom(0).next_int() == 12345


def test_next_float_is_normalized_by_modulus_minus_one() -> None:
    rng = DeterministicRandom(0)
    assert rng.next_float() == 12345 / (MODULUS - 1)


def test_identical_seeds_give_identical_sequences() -> None:
    first = DeterministicRandom(20240101)
    second = DeterministicRandom(20240101)
    assert [first.next_int() for _ in range(50)] == [second.next_int() for _ in range(50)]


def test_shuffle_is_reproducible_and_a_permutation() -> None:
    items = list(range(25))
    first = DeterministicRandom(99).shuffle(list(items))
    second = DeterministicRandom(99).shuffle(list(items))

    assert first == second
    assert sorted(first) == items


def test_different_seeds_shuffle_differently() -> None:
    items = list(range(25))
    assert DeterministicRandom(1).shuffle(list(items)) != DeterministicRandom(2).shuffle(list(items))


def test_shuffle_handles_trivial_lists() -> None:
    rng = DeterministicRandom(5)
    assert rng.shuffle([]) == []
    assert rng.shuffle(["only"]) == ["only"]


def test_missing_seed_is_recorded() -> None:
    rng = DeterministicRandom()
    replay = DeterministicRandom(rng.seed)
    assert [rng.next_int() for _ in range(5)] == [replay.next_int() for _ in range(5)]
