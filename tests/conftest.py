import random

import pytest

from qkd_engine import BB84Engine


class ScriptedRandom(random.Random):
    """A Random whose random() replays a fixed script of draws."""

    def __init__(self, draws):
        super().__init__(0)
        self._draws = list(draws)

    def random(self):
        if not self._draws:
            raise AssertionError("ScriptedRandom ran out of draws")
        return self._draws.pop(0)

    @property
    def remaining(self):
        return len(self._draws)


@pytest.fixture
def scripted():
    return ScriptedRandom


@pytest.fixture
def engine():
    return BB84Engine(seed=1234, clock=lambda: 1_700_000_000.0)
