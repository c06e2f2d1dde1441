import copy
import os

# headless pygame: surfaces, fonts and a dummy window without a real display
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import pytest

from bleradar import config


@pytest.fixture
def cfg():
    return copy.deepcopy(config._DEFAULT)
