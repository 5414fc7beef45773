"""Selection set - owned table of selected files and their preview handles."""
import logging
from collections import OrderedDict
from typing import Dict, Iterator, List, Optional

from ..models import SelectedItem, SourceFile
from ..protocols import IPreviewFactory

logger = logging.getLogger(__name__)


class SelectionSet:
    """
    Ordered table of SelectedItem keyed by identity.

    The table owns every preview handle it holds: ``insert`` creates exactly
    one, and each removal path (``remove_by_key``, ``clear_all``, ``close``)
    releases exactly the handles it drops. Callers never revoke handles
    themselves.
    """

    def __init__(self, previews: IPreviewFactory):
        self._previews = previews
        self._items: "OrderedDict[str, SelectedItem]" = OrderedDict()
        self._fingerprints: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[SelectedItem]:
        return iter(list(self._items.values()))

    def __contains__(self, identity: object) -> bool:
        return identity in self._items

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def keys(self) -> List[str]:
        return list(self._items.keys())

    def items(self) -> List[SelectedItem]:
        """Snapshot in insertion order."""
        return list(self._items.values())

    def get(self, identity: str) -> Optional[SelectedItem]:
        return self._items.get(identity)

    def contains_fingerprint(self, file: SourceFile) -> bool:
        return file.fingerprint in self._fingerprints

    @property
    def total_bytes(self) -> int:
        return sum(item.file.size for item in self._items.values())

    def insert(self, file: SourceFile) -> Optional[SelectedItem]:
        """
        Add a file, creating its preview handle.

        Returns None without side effects when a file with the same name, size
        and modification time is already selected.
        """
        if file.fingerprint in self._fingerprints:
            return None

        identity = SelectedItem.make_identity(file)
        handle = self._previews.create(file)
        item = SelectedItem(identity=identity, file=file, preview_handle=handle)
        self._items[identity] = item
        self._fingerprints[file.fingerprint] = identity
        return item

    def remove_by_key(self, identity: str) -> bool:
        """Drop one entry and release its handle. Unknown keys are a no-op."""
        item = self._items.pop(identity, None)
        if item is None:
            return False
        self._fingerprints.pop(item.fingerprint, None)
        self._previews.revoke(item.preview_handle)
        return True

    def clear_all(self) -> int:
        """Drop every entry, releasing each handle once. Returns the count."""
        dropped = list(self._items.values())
        self._items.clear()
        self._fingerprints.clear()
        released = 0
        for item in dropped:
            try:
                self._previews.revoke(item.preview_handle)
                released += 1
            except Exception:
                logger.exception("Failed to release preview handle for %s", item.name)
        if dropped:
            logger.debug("Released %d/%d preview handle(s)", released, len(dropped))
        return len(dropped)

    def close(self) -> None:
        """Discard the table when its owner goes away."""
        self.clear_all()
