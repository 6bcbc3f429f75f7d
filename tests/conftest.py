"""Shared test fixtures."""

import shutil
import tempfile

import numpy as np
import pytest
from PIL import Image

from MaskBrew.config import PackerConfig
from MaskBrew.core import ArrayImageSource


class SampledSource:
    """ImageSource that only offers per-pixel sampling (no array access)."""

    def __init__(self, width, height, fn, identifier=None):
        self.width = width
        self.height = height
        self.identifier = identifier
        self._fn = fn

    def sample(self, x, y):
        return self._fn(x, y)


@pytest.fixture
def tmp_dir():
    d = tempfile.mkdtemp()
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def default_config():
    return PackerConfig()


def constant_source(width, height, value, identifier=None):
    return ArrayImageSource.constant(width, height, value, identifier)


def gradient_source(width, height, identifier=None):
    """Source whose value encodes its coordinates: (x + y * width) / (w * h)."""
    arr = np.arange(width * height, dtype=np.float32).reshape(height, width)
    return ArrayImageSource(arr / float(width * height), identifier)


def save_test_png(path, width=8, height=8, value=None, mode="L"):
    """Write a small 8-bit PNG; random content unless ``value`` is given."""
    channels = {"L": None, "RGB": 3, "RGBA": 4}[mode]
    shape = (height, width) if channels is None else (height, width, channels)
    if value is None:
        arr = np.random.randint(0, 256, shape, dtype=np.uint8)
    else:
        arr = np.full(shape, int(round(value * 255)), dtype=np.uint8)
    Image.fromarray(arr).save(path)
    return arr
