import pytest
from fastapi.testclient import TestClient

from Engine.nodes import children


def node_ids(node):
    """ids of every node object in a subtree."""
    ids = set()
    stack = [node] if node is not None else []
    while stack:
        current = stack.pop()
        ids.add(id(current))
        stack.extend(children(current))
    return ids


@pytest.fixture
def client():
    from main import app
    return TestClient(app)
