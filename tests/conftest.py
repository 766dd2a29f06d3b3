import itertools

import pytest

from fractal_bitshadows import FractalConfig, CyclingColorSource


class CountingColorSource:
    """Hands out 0, 1, 2, ... and records how often it was asked."""

    def __init__(self):
        self.calls = 0

    def next(self):
        value = self.calls
        self.calls += 1
        return value


@pytest.fixture
def counter():
    return CountingColorSource()


@pytest.fixture
def small_config():
    return FractalConfig(depth=2, branching_factor=3)


@pytest.fixture
def red_source():
    return CyclingColorSource([(255, 0, 0)])


@pytest.fixture
def numbers():
    return itertools.count()
