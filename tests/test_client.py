import logging
import os
import sys

import pytest

client_path = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'client'))
if client_path not in sys.path:
    sys.path.insert(0, client_path)

import cloudPeekViewer


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logger = logging.getLogger("cloudPeek")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.mark.parametrize("argv", [
    ["events.csv", "--window", "0"],
    ["cloud.pcd", "--batch-size", "0"],
    ["spin.raw", "--batch-size", "-5"],
    ["cloud.pcd", "--point-size", "0"],
    ["cloud.pcd", "--color-scale", "fixed", "--max-distance", "0"],
])
def test_invalid_options_exit_with_usage_error(argv):
    assert cloudPeekViewer.main(argv + ["--log-level", "ERROR"]) == 2
