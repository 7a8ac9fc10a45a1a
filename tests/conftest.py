import random

import pytest

import placerlab  # noqa: F401  (registers every symbol and effect)
from placerlab.bounds import Bounds
from placerlab.symbols import SymbolTree


@pytest.fixture
def tree():
    return SymbolTree(rng=random.Random(1234))


@pytest.fixture
def make(tree):
    """Build a symbol in the shared tree (the first one becomes the root) and return it."""
    def build(type_name, parameters=None):
        index = tree.create(type_name, parameters)
        if tree.root is None:
            tree.root = index
        return tree.node(index)
    return build


@pytest.fixture
def wide():
    return Bounds.from_xywh(0, 0, 300, 100)


@pytest.fixture
def square():
    return Bounds.from_xywh(0, 0, 200, 200)
