import numpy as np
import cv2
import pytest


def make_textured(height=480, width=640, block=10, seed=0):
    """Blocky random texture: plenty of ORB corners, fully deterministic."""
    rng = np.random.default_rng(seed)
    small = rng.integers(0, 256, size=(height // block, width // block), dtype=np.uint8)
    return cv2.resize(small, (width, height), interpolation=cv2.INTER_NEAREST)


@pytest.fixture
def textured_image():
    return make_textured()


@pytest.fixture
def textured_color(textured_image):
    return cv2.cvtColor(textured_image, cv2.COLOR_GRAY2BGR)


@pytest.fixture
def uniform_color():
    img = np.zeros((480, 640, 3), dtype=np.uint8)
    img[:] = (60, 60, 60)
    return img


@pytest.fixture
def square_target(uniform_color):
    """Uniform image with one 50x50 contrasting square at (100, 100)."""
    img = uniform_color.copy()
    img[100:150, 100:150] = (200, 200, 200)
    return img
