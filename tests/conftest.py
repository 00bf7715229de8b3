"""
Pytest Configuration and Fixtures
"""

import os
import sys
import pytest
import tempfile

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), 'src'))

from crypto.bls import BLSScheme
from crypto.ecdsa import ECDSAScheme


@pytest.fixture
def temp_keys_dir(monkeypatch):
    """Create a temporary directory for key storage."""
    with tempfile.TemporaryDirectory() as tmpdir:
        monkeypatch.setenv("SIGTOOL_KEYSTORE", tmpdir)
        yield tmpdir


@pytest.fixture(scope="session")
def ecdsa():
    return ECDSAScheme()


@pytest.fixture(scope="session")
def bls():
    return BLSScheme()


@pytest.fixture(scope="session")
def bls_keypairs(bls):
    """Three BLS key pairs. Pairing arithmetic is slow, so share them."""
    return [bls.generate_keypair() for _ in range(3)]


@pytest.fixture(scope="session")
def vote_signatures(bls, bls_keypairs):
    """Each of the three keys signs b"vote:yes"."""
    return [bls.sign(sk, b"vote:yes") for sk, _ in bls_keypairs]
