import jax
import numpy as np
import pytest


def pytest_sessionstart(session):
    """Enable JAX 64-bit mode at the start of the pytest session."""
    jax.config.update("jax_enable_x64", True)


@pytest.fixture
def rng():
    """Seeded generator for random coefficient vectors."""
    return np.random.default_rng(1234)
