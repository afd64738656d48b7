"""
Snapshot storage for moltsum.
"""
import json
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from moltsum.errors import SnapshotIOError

logger = logging.getLogger(__name__)

# Snapshot layout written by the feed fetcher
DATA_DIR = Path("data")
LATEST_NAME = "latest.json"
ARCHIVE_DIR_NAME = "archive"


def _target_mode(path: Path) -> int:
    """Permission bits for a saved document: the existing file's, else 0o666 minus umask."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


class SnapshotStore:
    """
    Loads and saves the JSON snapshot documents: ``latest.json`` and the
    dated documents under ``archive/``.
    """
    def __init__(
        self,
        data_dir: Path = DATA_DIR,
        latest_name: str = LATEST_NAME,
        archive_dir: str = ARCHIVE_DIR_NAME,
    ):
        self.data_dir = Path(data_dir)
        self.latest_path = self.data_dir / latest_name
        self.archive_dir = self.data_dir / archive_dir

    def list_documents(self) -> List[Path]:
        """
        List every snapshot document, latest first.

        Returns:
            Paths of ``latest.json`` (if present) followed by the archive
            documents sorted by name
        """
        documents = []
        if self.latest_path.is_file():
            documents.append(self.latest_path)

        if self.archive_dir.is_dir():
            documents.extend(sorted(
                path for path in self.archive_dir.iterdir()
                if path.suffix == '.json' and path.is_file()
            ))
        return documents

    def load(self, path: Path) -> Optional[Dict]:
        """
        Load one snapshot document.

        Args:
            path: Document to load

        Returns:
            The parsed document, or None if it does not exist

        Raises:
            SnapshotIOError: If the file exists but cannot be read or parsed
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise SnapshotIOError(path, f"cannot read: {e}") from e
        except json.JSONDecodeError as e:
            raise SnapshotIOError(path, f"invalid JSON: {e}") from e

    def save(self, path: Path, document: Dict) -> None:
        """
        Overwrite a snapshot document.

        The document is written to a temporary file next to the target and
        moved into place, so readers never see a partial file.

        Args:
            path: Document to write
            document: Full document contents

        Raises:
            SnapshotIOError: If the document cannot be written
        """
        path = Path(path)
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
            os.chmod(tmp_name, _target_mode(path))
            os.replace(tmp_name, path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as e:
            raise SnapshotIOError(path, f"cannot write: {e}") from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
        logger.debug(f"Saved snapshot {path}")

    def load_all(self) -> List[Tuple[Path, Dict]]:
        """
        Load every listed document, skipping ones that disappeared.

        Returns:
            (path, document) pairs in listing order
        """
        loaded = []
        for path in self.list_documents():
            document = self.load(path)
            if document is None:
                logger.debug(f"Snapshot {path} vanished before loading")
                continue
            loaded.append((path, document))
        return loaded
