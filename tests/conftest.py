import pytest

from exactcalc.MathEngine import Environment, PrecisionPolicy


@pytest.fixture(autouse=True)
def data_home(tmp_path, monkeypatch):
    """Keep settings and saved variables out of the real home directory."""
    home = tmp_path / "exactcalc-home"
    monkeypatch.setenv("EXACTCALC_HOME", str(home))
    return home


@pytest.fixture
def environment():
    return Environment()


@pytest.fixture
def precision():
    return PrecisionPolicy()
