"""Extraction settings and the settings file reader."""

import configparser
import os
from dataclasses import dataclass
from typing import Optional

from errors import ConfigError

DEFAULT_FILENAME = os.path.join(os.path.expanduser("~"), ".pathsum", "settings.conf")


@dataclass(frozen=True)
class ExtractionConfig:
    """Knobs for :func:`extraction.extract_unitary`

    Attributes:
        max_passes: Maximum number of frontier passes before giving up, or
            None to run until a fixpoint is reached
        strength_reduction: Whether to fall back on the exponential
            substitution search when no Hadamard layer applies
        max_substitution_size: Largest substitution set tried by the search,
            or None to try every size
    """
    max_passes: Optional[int] = None
    strength_reduction: bool = True
    max_substitution_size: Optional[int] = None


class UserConfig:
    """Class representing a settings file

    The file format should look like:

    [default]
    max_passes = 100
    strength_reduction = true
    max_substitution_size = 3

    """

    def __init__(self, filename=None):
        """Create a UserConfig

        Args:
            filename (str): The path to the settings file. If one isn't
                specified, ~/.pathsum/settings.conf is used.
        """
        if filename is None:
            self.filename = DEFAULT_FILENAME
        else:
            self.filename = filename
        self.settings = {}
        self.config_parser = configparser.ConfigParser()

    def read_config_file(self):
        """Read the settings file and parse the contents into the settings attr."""
        if not os.path.isfile(self.filename):
            return
        self.config_parser.read(self.filename)
        if "default" not in self.config_parser.sections():
            return

        for key in ("max_passes", "max_substitution_size"):
            value = self.config_parser.get("default", key, fallback=None)
            if value is None:
                continue
            if value.strip().lower() == "none":
                self.settings[key] = None
                continue
            try:
                value = int(value)
            except ValueError as ex:
                raise ConfigError(f"{key} must be an integer or 'none', got '{value}'") from ex
            if value < 1:
                raise ConfigError(f"{key} must be positive, got {value}")
            self.settings[key] = value

        try:
            strength_reduction = self.config_parser.getboolean(
                "default", "strength_reduction", fallback=None
            )
        except ValueError as ex:
            raise ConfigError("strength_reduction must be a boolean") from ex
        if strength_reduction is not None:
            self.settings["strength_reduction"] = strength_reduction


def get_config(filename=None) -> ExtractionConfig:
    """Read the settings file into an :class:`ExtractionConfig`

    The file is taken from ``filename``, then the ``PATHSUM_SETTINGS``
    environment variable, then the default location. A missing file gives
    the default configuration.
    """
    if filename is None:
        filename = os.getenv("PATHSUM_SETTINGS", DEFAULT_FILENAME)
    user_config = UserConfig(filename)
    user_config.read_config_file()
    return ExtractionConfig(**user_config.settings)
