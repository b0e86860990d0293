import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent))

from staking_helpers import deploy_staking  # noqa: E402


@pytest.fixture
def deployment():
    """Deployed contracts with staking still locked."""
    return deploy_staking()


@pytest.fixture
def live_deployment():
    """Deployed contracts with staking enabled."""
    return deploy_staking(enable=True)


@pytest.fixture
def reset_ldstake_logger():
    """Drop handlers that setup_logging attached to the package logger."""
    yield
    package_logger = logging.getLogger("ldstake")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)
