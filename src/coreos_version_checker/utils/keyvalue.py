from __future__ import annotations


class ConfigValueNotFoundError(Exception):
    def __init__(self, key: str, path: str) -> None:
        self.key = key
        self.path = path
        super().__init__(f"no {key!r} line found in {path}")


def value_from_file(key: str, path: str) -> str:
    """
    Return the value of the first line in a KEY=value file that starts with `key` (which includes
    the trailing "="). OSError is raised as-is when the file cannot be read.
    """
    with open(path, encoding="utf-8") as f:
        for line in f:
            if line.startswith(key):
                return line[len(key) :].strip()

    raise ConfigValueNotFoundError(key, path)
