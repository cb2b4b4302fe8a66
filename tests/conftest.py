import os

import pytest

_SLOW_ENV_FLAG = "ROSTERLAB_RUN_SLOW"


def pytest_collection_modifyitems(config, items):
    """Skip full-budget optimization runs unless explicitly enabled."""

    if os.getenv(_SLOW_ENV_FLAG):
        return
    skip_slow = pytest.mark.skip(reason=f"Set {_SLOW_ENV_FLAG}=1 to run full-budget optimizations.")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)
