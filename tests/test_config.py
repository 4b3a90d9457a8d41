import pytest

from config import ExtractionConfig, UserConfig, get_config
from errors import ConfigError


def write_settings(tmp_path, text: str) -> str:
    path = tmp_path / "settings.conf"
    path.write_text(text)
    return str(path)


def test_missing_file(tmp_path):
    assert get_config(str(tmp_path / "nothing.conf")) == ExtractionConfig()


def test_read_settings(tmp_path):
    filename = write_settings(
        tmp_path,
        "[default]\nmax_passes = 20\nstrength_reduction = false\nmax_substitution_size = 2\n",
    )
    config = get_config(filename)
    assert config.max_passes == 20
    assert config.strength_reduction is False
    assert config.max_substitution_size == 2


def test_partial_settings(tmp_path):
    filename = write_settings(tmp_path, "[default]\nmax_passes = none\n")
    user_config = UserConfig(filename)
    user_config.read_config_file()
    assert user_config.settings == {"max_passes": None}
    assert get_config(filename) == ExtractionConfig()


def test_no_default_section(tmp_path):
    filename = write_settings(tmp_path, "[other]\nmax_passes = 3\n")
    assert get_config(filename) == ExtractionConfig()


@pytest.mark.parametrize(
    "text",
    [
        "[default]\nmax_passes = lots\n",
        "[default]\nmax_passes = 0\n",
        "[default]\nmax_substitution_size = -1\n",
        "[default]\nstrength_reduction = maybe\n",
    ],
)
def test_invalid_settings(tmp_path, text):
    with pytest.raises(ConfigError):
        get_config(write_settings(tmp_path, text))


def test_environment_variable(tmp_path, monkeypatch):
    filename = write_settings(tmp_path, "[default]\nmax_passes = 7\n")
    monkeypatch.setenv("PATHSUM_SETTINGS", filename)
    assert get_config().max_passes == 7
