"""Six-sided dice for combat resolution.

Every random draw in a battle goes through one of these rollers, so a battle
can be replayed exactly by feeding the same faces back through a
:class:`SequenceRoller`.
"""
from __future__ import annotations

from typing import Iterable, List, Optional
import random

DIE_FACES = 6


class DieRoller:
    """Uniform d6 backed by a private :class:`random.Random` stream."""

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random(seed)

    def roll(self) -> int:
        return self.rng.randint(1, DIE_FACES)


class SequenceRoller(DieRoller):
    """Replays a fixed list of faces in order."""

    def __init__(self, faces: Iterable[int]):
        super().__init__(rng=random.Random(0))
        self.faces: List[int] = []
        for face in faces:
            face = int(face)
            if face < 1 or face > DIE_FACES:
                raise ValueError(f"die face out of range: {face}")
            self.faces.append(face)
        self.position = 0

    def roll(self) -> int:
        if self.position >= len(self.faces):
            raise IndexError(f"dice sequence exhausted after {self.position} rolls")
        face = self.faces[self.position]
        self.position += 1
        return face

    @property
    def remaining(self) -> int:
        return len(self.faces) - self.position


class RecordingRoller(DieRoller):
    """Wraps another roller and keeps every face it produced."""

    def __init__(self, inner: DieRoller):
        super().__init__(rng=inner.rng)
        self.inner = inner
        self.history: List[int] = []

    def roll(self) -> int:
        face = self.inner.roll()
        self.history.append(face)
        return face


def spawn_seeds(seed: Optional[int], count: int) -> List[int]:
    """Derive ``count`` independent seeds for parallel workers."""
    master = random.Random(seed)
    return [master.randint(1, 2**31 - 1) for _ in range(max(0, count))]


__all__ = ["DIE_FACES", "DieRoller", "RecordingRoller", "SequenceRoller", "spawn_seeds"]
