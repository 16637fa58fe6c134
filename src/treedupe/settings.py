import logging
import multiprocessing
import os
import tomllib
from pathlib import Path

from .similarity.measure import IDENTICAL_THRESHOLD
from .utils.walker import DEFAULT_ARCHIVE_EXTENSIONS, DEFAULT_SKIP_DIRECTORIES

CONFIG_ENVIRONMENT_VARIABLE = 'TREEDUPE_CONFIG'
DEFAULT_CONFIG_FILENAME = 'treedupe.toml'


class ScanSettings:
    """Scan configuration loaded from a TOML file.

    Every key is optional; missing keys fall back to built-in defaults. Keys use
    dot notation for tables, e.g. 'walk.archive_extensions' is read from

        [walk]
        archive_extensions = [".zip", ".jar"]

    Example:
        settings = ScanSettings.load()
        walker = Walker(archive_extensions=settings.archive_extensions)
    """

    def __init__(self, data: dict | None = None, path: Path | None = None):
        self._data = data if data is not None else {}
        self._path = path

    @classmethod
    def load(cls, path: str | os.PathLike | None = None) -> 'ScanSettings':
        """Load settings from path, $TREEDUPE_CONFIG, or ./treedupe.toml, in that order.

        An explicitly given file (argument or environment) must exist. Without
        either, a missing ./treedupe.toml means defaults for everything.

        Raises:
            FileNotFoundError: An explicitly given settings file does not exist
            tomllib.TOMLDecodeError: The file is not valid TOML
        """
        if path is None:
            path = os.environ.get(CONFIG_ENVIRONMENT_VARIABLE)

        if path is None:
            settings_file = Path(DEFAULT_CONFIG_FILENAME)
            if not settings_file.exists():
                return cls()
        else:
            settings_file = Path(path)
            if not settings_file.exists():
                raise FileNotFoundError(f"Settings file not found: {settings_file}")

        with open(settings_file, 'rb') as f:
            return cls(tomllib.load(f), settings_file)

    @property
    def path(self) -> Path | None:
        return self._path

    def get(self, key: str, default=None):
        value = self._data
        for k in key.split('.'):
            if not isinstance(value, dict) or k not in value:
                return default
            value = value[k]
        return value

    def set(self, key: str, value) -> None:
        """Override a setting for this process only; the file is not modified."""
        *tables, name = key.split('.')
        target = self._data
        for k in tables:
            target = target.setdefault(k, {})
        target[name] = value

    def _typed(self, key: str, expected: type | tuple[type, ...], default):
        value = self.get(key, default)
        # bool is an int subclass; a boolean where a number is expected is a mistake
        if not isinstance(value, expected) or (isinstance(value, bool) and bool not in _as_tuple(expected)):
            raise ValueError(f"Setting {key} must be {_describe_type(expected)}, not {value!r}")
        return value

    def _string_list(self, key: str, default: tuple[str, ...]) -> tuple[str, ...]:
        value = self._typed(key, list, list(default))
        if not all(isinstance(item, str) for item in value):
            raise ValueError(f"Setting {key} must be a list of strings, not {value!r}")
        return tuple(value)

    @property
    def archive_extensions(self) -> tuple[str, ...]:
        return self._string_list('walk.archive_extensions', DEFAULT_ARCHIVE_EXTENSIONS)

    @property
    def skip_directories(self) -> tuple[str, ...]:
        return self._string_list('walk.skip_directories', DEFAULT_SKIP_DIRECTORIES)

    @property
    def identical_threshold(self) -> float:
        threshold = float(self._typed('similarity.identical_threshold', (int, float), IDENTICAL_THRESHOLD))
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"Setting similarity.identical_threshold must be between 0 and 1, not {threshold}")
        return threshold

    @property
    def include_disjoint(self) -> bool:
        return self._typed('report.include_disjoint', bool, False)

    @property
    def concurrency(self) -> int:
        concurrency = self._typed('processor.concurrency', int, multiprocessing.cpu_count())
        if concurrency < 0:
            raise ValueError(f"Setting processor.concurrency must not be negative, not {concurrency}")
        return concurrency

    @property
    def log_path(self) -> str | None:
        return self._typed('logging.path', (str, type(None)), None)

    @property
    def log_level(self) -> str | None:
        level = self._typed('logging.level', (str, type(None)), None)
        if level is not None and not isinstance(logging.getLevelName(level.upper()), int):
            raise ValueError(f"Setting logging.level is not a logging level: {level!r}")
        return level.upper() if level is not None else None


def _as_tuple(expected: type | tuple[type, ...]) -> tuple[type, ...]:
    return expected if isinstance(expected, tuple) else (expected,)


def _describe_type(expected: type | tuple[type, ...]) -> str:
    return ' or '.join(t.__name__ for t in _as_tuple(expected) if t is not type(None))
