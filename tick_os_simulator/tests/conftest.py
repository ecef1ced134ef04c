import os
import sys

import matplotlib
import pytest

matplotlib.use("Agg")

from tick_os_simulator.backend.core import ProcessQueue
from tick_os_simulator.backend.workload import DEFAULT_WORKLOAD, make_workload


def pytest_sessionstart(session):
    # Ensure project root is on sys.path so the package imports without install
    here = os.path.dirname(os.path.abspath(__file__))
    project_root = os.path.abspath(os.path.join(here, os.pardir, os.pardir))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


@pytest.fixture
def sample_workload():
    """The four-job table (0,3), (2,7), (4,1), (6,5)."""
    return DEFAULT_WORKLOAD


@pytest.fixture
def two_job_workload():
    return make_workload([(0, 3), (1, 3)])


@pytest.fixture
def queue():
    return ProcessQueue()
