# MDTasks Manual Order
# The .order.json manifest: per-view manual ordering of task files

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mdtasks.codec.models import TaskRecord
from mdtasks.errors import StructuralParseError, TaskError, TaskIOError
from mdtasks.utils.paths import atomic_write, expand_path

logger = logging.getLogger(__name__)

ORDER_FILENAME = ".order.json"
ORDER_VERSION = 1


@dataclass
class OrderDocument:
    """Parsed manifest; unknown top-level keys are kept for the next save."""

    version: int = ORDER_VERSION
    views: dict[str, list[str]] = field(default_factory=dict)
    unknown_top_level: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.unknown_top_level)
        data["version"] = self.version
        data["views"] = self.views
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderDocument":
        version = data.get("version", ORDER_VERSION)
        if not isinstance(version, int) or isinstance(version, bool):
            version = ORDER_VERSION

        views: dict[str, list[str]] = {}
        raw_views = data.get("views")
        if isinstance(raw_views, dict):
            for view, filenames in raw_views.items():
                if isinstance(filenames, list) and all(isinstance(name, str) for name in filenames):
                    views[view] = filenames

        unknown = {key: value for key, value in data.items() if key not in ("version", "views")}
        return cls(version=version, views=views, unknown_top_level=unknown)


class OrderRepository:
    """Loads and saves the manifest at the root of a task folder."""

    def __init__(self, root: Path | str):
        self.root = expand_path(root)

    @property
    def path(self) -> Path:
        return self.root / ORDER_FILENAME

    def load(self) -> OrderDocument:
        """
        Load the manifest.

        Returns:
            OrderDocument (empty if the file does not exist).

        Raises:
            StructuralParseError: If the file is not a JSON object.
            TaskIOError: If the file cannot be read.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return OrderDocument()
        except OSError as e:
            raise TaskIOError("read", self.path, str(e)) from None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StructuralParseError(f"{ORDER_FILENAME} is malformed: {e.msg}", path=self.path) from None

        if not isinstance(data, dict):
            raise StructuralParseError(f"{ORDER_FILENAME} is malformed: not an object", path=self.path)
        return OrderDocument.from_dict(data)

    def save(self, document: OrderDocument) -> None:
        """Write the manifest atomically with sorted keys."""
        content = json.dumps(document.to_dict(), indent=2, sort_keys=True, ensure_ascii=False) + "\n"
        try:
            atomic_write(self.path, content)
        except OSError as e:
            raise TaskIOError("write", self.path, str(e)) from None


def _newest_first(records: Iterable[TaskRecord]) -> list[TaskRecord]:
    return sorted(records, key=lambda record: record.frontmatter.created, reverse=True)


class ManualOrder:
    """
    Applies and records manual ordering for a view.

    Records named in the manifest come first, in manifest order; all others
    follow, newest ``created`` first. The manifest changes only through
    ``save_order``.
    """

    def __init__(self, repository: OrderRepository):
        self.repository = repository

    def ordered(self, records: Iterable[TaskRecord], view: str) -> list[TaskRecord]:
        records = list(records)
        try:
            document = self.repository.load()
        except TaskError as e:
            logger.warning(f"Ignoring manual order: {e}")
            return _newest_first(records)

        filenames = document.views.get(view)
        if not filenames:
            return _newest_first(records)

        position: dict[str, int] = {}
        for index, name in enumerate(filenames):
            position.setdefault(name, index)

        mentioned = sorted(
            (record for record in records if record.filename in position),
            key=lambda record: position[record.filename],
        )
        rest = _newest_first(record for record in records if record.filename not in position)
        return mentioned + rest

    def save_order(self, view: str, filenames: list[str]) -> None:
        """Replace the stored order for one view, keeping everything else."""
        document = self.repository.load()
        document.views[view] = list(filenames)
        self.repository.save(document)
