from __future__ import annotations

import random
from typing import Iterable

import pytest

from order_desk.errors import IdGenerationExhausted
from order_desk.frontend.dice import DICE_FACES, next_face
from order_desk.orderdb import CustomerService, OrderDatabase, ProductService
from order_desk.orderdb.identity import generate_key


class _SequenceRandom:
    """Returns scripted draws in order."""

    def __init__(self, values: Iterable[int]) -> None:
        self._values = iter(values)
        self.draws = 0

    def randint(self, _a: int, _b: int) -> int:
        self.draws += 1
        return next(self._values)


def test_generate_key_rerolls_past_collisions() -> None:
    rng = _SequenceRandom([1001, 1002, 1003])
    assert generate_key({"1001", "1002"}, rng=rng) == "1003"
    assert rng.draws == 3


def test_generate_key_gives_up_after_twenty_draws() -> None:
    rng = _SequenceRandom([1001] * 25)
    with pytest.raises(IdGenerationExhausted):
        generate_key({"1001"}, rng=rng)
    assert rng.draws == 20


def test_generated_keys_are_four_digits_and_never_taken() -> None:
    rng = random.Random(1234)
    existing = {str(n) for n in range(1000, 9999, 3)}
    for _ in range(200):
        key = generate_key(existing, rng=rng)
        assert len(key) == 4 and key.isdigit()
        assert key not in existing


def test_full_key_space_is_exhausted() -> None:
    existing = {str(n) for n in range(1000, 10000)}
    with pytest.raises(IdGenerationExhausted):
        generate_key(existing, rng=random.Random(7))


def test_services_generate_keys_against_current_rows(db: OrderDatabase) -> None:
    products = ProductService(db, rng=_SequenceRandom([2001, 2002]))
    products.create({"product_number": "2001", "name": "Cupcake", "price": "3.50"})
    assert products.generate_key() == "2002"

    customers = CustomerService(db, rng=_SequenceRandom([1001, 1001, 1005]))
    customers.create({"customer_id": "1001", "name": "Jane Doe", "phone": "(246) 123-4567"})
    assert customers.generate_key() == "1005"


def test_next_face_always_changes_when_possible() -> None:
    rng = random.Random(99)
    for current in DICE_FACES:
        for _ in range(30):
            face = next_face(current, rng=rng)
            assert face in DICE_FACES
            assert face != current


def test_next_face_from_initial_icon_and_single_face() -> None:
    assert next_face("dice", rng=random.Random(1)) in DICE_FACES
    assert next_face("dice-one", faces=("dice-one",)) == "dice-one"
    with pytest.raises(ValueError):
        next_face(None, faces=())
