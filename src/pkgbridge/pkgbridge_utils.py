"""
This file contains various utility functions like hashing manifests, ordered de-duplication, etc.
"""

import hashlib
import os
from typing import Iterable, List, Tuple, TypeVar

T = TypeVar("T")


class FileUtils:
    """
    Utility functions for files
    """

    @staticmethod
    def file_digest(path: str) -> str:
        """
        Returns the sha256 hex digest of the file contents at path.
        Raises OSError if the file cannot be read.
        """
        digest = hashlib.sha256()
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(65536), b""):
                digest.update(chunk)
        return digest.hexdigest()

    @staticmethod
    def resolve_path(base_dir: str, path: str) -> str:
        """
        Joins a possibly relative path onto base_dir without touching the filesystem.
        """
        if os.path.isabs(path):
            return os.path.normpath(path)
        return os.path.normpath(os.path.join(base_dir, path))


class SequenceUtils:
    """
    Utility functions for ordered sequences
    """

    @staticmethod
    def ordered_unique(items: Iterable[T]) -> List[T]:
        """
        Removes exact duplicates, keeping the first occurrence of each item.
        """
        seen = set()
        out = []
        for item in items:
            if item in seen:
                continue
            seen.add(item)
            out.append(item)
        return out

    @staticmethod
    def merge_unique(*sequences: Iterable[T]) -> Tuple[T, ...]:
        """
        Concatenates the sequences in order and removes exact duplicates.
        """
        merged: List[T] = []
        for seq in sequences:
            merged.extend(seq)
        return tuple(SequenceUtils.ordered_unique(merged))
