import numpy as np
import pytest

from form_registration.config import reload_config
from form_registration.image_processing import PixelBuffer

WHITE = 255
BLACK = 0


def blank_page(width, height, value=WHITE):
    """White RGB page."""
    return np.full((height, width, 3), value, dtype=np.uint8)


def draw_square(img, x, y, size, value=BLACK):
    img[y:y + size, x:x + size] = value
    return img


def page_with_marks(width=400, height=500, size=15, inset=20):
    """
    Page with four dark square marks inset from each corner.

    Returns:
        (rgb array, dict of true centroids keyed tl/tr/br/bl)
    """
    img = blank_page(width, height)
    origins = {
        "tl": (inset, inset),
        "tr": (width - inset - size, inset),
        "br": (width - inset - size, height - inset - size),
        "bl": (inset, height - inset - size),
    }
    centroids = {}
    for key, (x, y) in origins.items():
        draw_square(img, x, y, size)
        centroids[key] = (x + (size - 1) / 2, y + (size - 1) / 2)
    return img, centroids


@pytest.fixture
def marked_page():
    img, centroids = page_with_marks()
    return PixelBuffer(img), centroids


@pytest.fixture
def boxed_page():
    """
    200x200 page with a 2px dark frame around a light interior.

    Interior spans x 52..147 and y 62..137 inclusive.
    """
    img = blank_page(200, 200)
    img[60:140, 50:150] = BLACK
    img[62:138, 52:148] = WHITE
    return PixelBuffer(img)


@pytest.fixture
def env_config(monkeypatch):
    """
    Monkeypatch for FORMREG_* variables; configuration is reloaded with the
    original environment after the test.
    """
    yield monkeypatch
    monkeypatch.undo()
    reload_config()
