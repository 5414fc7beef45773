"""File collection utilities for picking photos from disk."""
from pathlib import Path
from typing import Iterable, List

from ..models import SourceFile


class FileCollector:
    """Collects candidate files from paths and folders."""

    @staticmethod
    def collect_files(paths: Iterable[Path]) -> List[SourceFile]:
        """
        Expand paths into files, in the order given.

        Folders are scanned recursively and their files sorted. Nothing is
        filtered here; type and size checks belong to the selection.

        Args:
            paths: Files and/or folders

        Returns:
            List of SourceFile
        """
        files = []
        for raw in paths:
            path = Path(raw).expanduser()
            if path.is_dir():
                found = sorted(item for item in path.rglob("*") if item.is_file())
                files.extend(SourceFile.from_path(item) for item in found)
            elif path.is_file():
                files.append(SourceFile.from_path(path))
            else:
                raise FileNotFoundError(f"No such file or folder: {path}")
        return files
