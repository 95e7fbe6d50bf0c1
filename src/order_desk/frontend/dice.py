from __future__ import annotations

import random
from typing import Optional, Sequence

# Icon names shown next to the key field; a new face on every generated key.
DICE_FACES = (
    "dice-one",
    "dice-two",
    "dice-three",
    "dice-four",
    "dice-five",
    "dice-six",
)


def next_face(current: Optional[str], faces: Sequence[str] = DICE_FACES, rng: Optional[random.Random] = None) -> str:
    """Pick a face different from `current` whenever more than one exists."""
    if not faces:
        raise ValueError("faces must not be empty")
    rand = rng or random
    candidates = [face for face in faces if face != current]
    if not candidates:
        return faces[0]
    return rand.choice(candidates)
