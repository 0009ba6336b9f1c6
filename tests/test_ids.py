"""Tests for the snowflake id generator."""

import pytest

from dicebot.errors import IDGenerationError
from dicebot.ids import EPOCH_MS, IdGenerator


class TestIdGenerator:
    def test_ids_are_unique_and_increasing(self) -> None:
        gen = IdGenerator(3)
        values = [gen.next_int() for _ in range(500)]
        assert values == sorted(values)
        assert len(set(values)) == len(values)

    def test_same_millisecond_uses_sequence(self) -> None:
        gen = IdGenerator(1, clock=lambda: EPOCH_MS + 10)
        first, second = gen.next_int(), gen.next_int()
        assert second == first + 1

    def test_worker_id_is_embedded(self) -> None:
        a = IdGenerator(1, clock=lambda: EPOCH_MS + 10).next_int()
        b = IdGenerator(2, clock=lambda: EPOCH_MS + 10).next_int()
        assert a != b

    def test_clock_going_backwards_fails(self) -> None:
        ticks = iter([EPOCH_MS + 100, EPOCH_MS + 50])
        gen = IdGenerator(1, clock=lambda: next(ticks))
        gen.next_id()
        with pytest.raises(IDGenerationError):
            gen.next_id()

    def test_next_id_is_decimal_string(self) -> None:
        value = IdGenerator(1).next_id()
        assert value.isdigit()
        assert len(value) <= 19

    def test_rejects_out_of_range_worker(self) -> None:
        with pytest.raises(ValueError):
            IdGenerator(5000)
