import numpy as np
import pytest

from geodesic.config import reload_curvdist_defaults
from viz.config import reload_viz_defaults


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch, tmp_path):
    """Run every test against built-in defaults and an empty working directory."""
    monkeypatch.delenv("CURVDIST_DEFAULTS_YAML", raising=False)
    monkeypatch.delenv("VIZ_DEFAULTS_YAML", raising=False)
    monkeypatch.chdir(tmp_path)
    reload_curvdist_defaults()
    reload_viz_defaults()
    yield
    reload_curvdist_defaults()
    reload_viz_defaults()


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
