"""Shared pytest fixtures for beanwire tests."""

from collections.abc import Iterator

import pytest

from beanwire.container import Container


@pytest.fixture()
def container() -> Iterator[Container]:
    """Empty container closed after the test."""
    container = Container()
    yield container
    container.close()


@pytest.fixture()
def strict_container() -> Iterator[Container]:
    """Container that rejects lazy circular references."""
    container = Container(allow_circular_references=False)
    yield container
    container.close()
