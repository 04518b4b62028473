import pytest

from project_staffing.io_utils import parse_instance

SAMPLE_INSTANCE = """\
3 3
Anna 1
C++ 2
Bob 2
HTML 5
CSS 5
Maria 1
Python 3
Logging 5 10 5 1
C++ 3
WebServer 7 10 7 2
HTML 3
C++ 2
WebChat 10 20 20 2
Python 3
HTML 3
"""


@pytest.fixture
def sample_text():
    return SAMPLE_INSTANCE


@pytest.fixture
def sample_instance():
    return parse_instance(SAMPLE_INSTANCE, source="sample.txt")
