from __future__ import annotations
from typing import Dict, Iterator, List, Mapping, Optional, Sequence
from pathlib import Path
import abc
import logging
import math
import os
import subprocess

logger = logging.getLogger(__name__)

# Paths per `file` invocation, keeps argv well below ARG_MAX
CHUNK_SIZE = 100

SIZE_UNITS = ["K", "M", "G", "T", "P", "E"]


class FileTypeError(Exception):
    """Raised when the content-type tool cannot be run."""
    pass


def chunked(items: Sequence[str], size: int) -> Iterator[List[str]]:
    if size <= 0:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


class FileTypeClassifier(abc.ABC):
    """
    Maps file paths to human-readable type descriptions, `file(1)` style.
    """

    @abc.abstractmethod
    def classify(self, paths: Sequence[str]) -> Dict[str, str]:
        raise NotImplementedError()

    def classify_all(self, paths: Sequence[str], chunk_size: int = CHUNK_SIZE) -> Dict[str, str]:
        """
        Classifies `paths` one chunk at a time, sequentially.

        Every path must come back with a description; a gap raises
        FileTypeError instead of leaving the file unchecked.
        """
        results: Dict[str, str] = {}
        for chunk in chunked(paths, chunk_size):
            descriptions = self.classify(chunk)
            missing = [p for p in chunk if p not in descriptions]
            if missing:
                raise FileTypeError(f"No file type reported for {len(missing)} files, first: {missing[0]!r}")
            results.update(descriptions)
        return results


def parse_file_output(output: bytes) -> Dict[str, str]:
    """
    Parses raw `file -N -r -0` output, `path\\0: description\\n` per file.

    Names may contain newlines, so the output is split on NUL: each piece after
    the first holds the previous file's description up to its first newline,
    then the next file's name. Names go through os.fsdecode so they compare
    equal to the paths git reports.
    """
    results: Dict[str, str] = {}
    pieces = output.split(b'\0')
    name = pieces[0]
    for piece in pieces[1:]:
        description, _, next_name = piece.partition(b'\n')
        results[os.fsdecode(name)] = description.decode('utf-8', errors='replace').lstrip(':').strip()
        name = next_name
    return results


class FileCommandClassifier(FileTypeClassifier):
    """
    Runs the system `file` utility once per batch of paths.

    Paths are resolved relative to `root`. A missing tool or a non-zero exit
    raises FileTypeError; nothing is retried.
    """

    def __init__(self, root: Path = Path('.'), command: str = 'file'):
        self.root = root
        self.command = command

    def classify(self, paths: Sequence[str]) -> Dict[str, str]:
        if not paths:
            return {}

        # -N: no padding, -r: raw names, -0: NUL after each name
        args = [self.command, '-N', '-r', '-0', '--', *paths]
        logger.debug(f"Running {self.command} on {len(paths)} files")
        try:
            output = subprocess.check_output(args, cwd=self.root)
        except FileNotFoundError as e:
            raise FileTypeError(f"{self.command} command not found. Make sure it is installed.") from e
        except subprocess.CalledProcessError as e:
            raise FileTypeError(f"{self.command} exited with status {e.returncode}") from e

        return parse_file_output(output)


class StaticClassifier(FileTypeClassifier):
    """
    Answers from a fixed mapping. Unknown paths get `default`, or are left out
    when there is none.
    """

    def __init__(self, descriptions: Mapping[str, str], default: Optional[str] = None):
        self.descriptions = dict(descriptions)
        self.default = default
        self.batches: List[List[str]] = []

    def classify(self, paths: Sequence[str]) -> Dict[str, str]:
        self.batches.append(list(paths))
        results: Dict[str, str] = {}
        for path in paths:
            description = self.descriptions.get(path, self.default)
            if description is not None:
                results[path] = description
        return results


def file_size(path: Path) -> Optional[int]:
    if not path.is_file():
        return None
    return path.stat().st_size


def human_size(size: int) -> str:
    """
    Formats a byte count the way `du -h` does: 1024-based, rounded up, one
    decimal below ten.
    """
    if size < 0:
        raise ValueError(f"Invalid size: {size}")
    if size < 1024:
        return f"{size}B"

    value = float(size)
    unit = SIZE_UNITS[0]
    for unit in SIZE_UNITS:
        value /= 1024
        if value < 1024:
            break

    if value < 10:
        rounded = math.ceil(value * 10) / 10
        if rounded < 10:
            return f"{rounded:.1f}{unit}"
    return f"{math.ceil(value)}{unit}"
