"""
Versioned datasets.

A ``Dataset`` is a named list of row dicts. ``push`` uploads the rows as a
new version of the named dataset; ``Dataset.pull`` fetches a version back
(the latest when none is given).
"""

import csv
import logging
from pathlib import Path
from typing import Any, Iterator
from urllib.parse import quote

from zeroeval.client import get_client

logger = logging.getLogger(__name__)


class Dataset:
    def __init__(
        self,
        name: str,
        data: list[dict[str, Any]] | None = None,
        description: str | None = None,
    ):
        if not name:
            raise ValueError("Dataset name must be a non-empty string")
        self.name = name
        self.description = description
        self.rows: list[dict[str, Any]] = []
        self.version: int | None = None
        self.dataset_id: str | None = None
        if data:
            self.add_rows(data)

    @classmethod
    def from_csv(
        cls,
        path: str | Path,
        name: str | None = None,
        description: str | None = None,
    ) -> "Dataset":
        path = Path(path)
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        return cls(name or path.stem, rows, description)

    def add_rows(self, rows: list[dict[str, Any]]) -> None:
        for row in rows:
            if not isinstance(row, dict):
                raise TypeError(f"Dataset rows must be dicts, got {type(row).__name__}")
            self.rows.append(dict(row))
        # local edits are not part of any pushed version
        self.version = None

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.rows)

    def __getitem__(self, index):
        return self.rows[index]

    def __repr__(self) -> str:
        return f"Dataset(name={self.name!r}, rows={len(self.rows)}, version={self.version})"

    def push(self, workspace_id: str | None = None) -> "Dataset":
        client = get_client()
        response = client.request(
            "POST",
            client.workspace_path("datasets", workspace_id),
            json={"name": self.name, "description": self.description, "rows": self.rows},
        )
        self.version = response["version"]
        self.dataset_id = response["dataset_id"]
        logger.info("Pushed dataset %s version %s (%d rows)", self.name, self.version, len(self))
        return self

    @classmethod
    def pull(
        cls,
        name: str,
        version: int | None = None,
        workspace_id: str | None = None,
    ) -> "Dataset":
        client = get_client()
        params = {"version": version} if version is not None else None
        path = client.workspace_path(f"datasets/{quote(name, safe='')}", workspace_id)
        response = client.request("GET", path, params=params)
        dataset = cls(response["name"], response["rows"], response.get("description"))
        dataset.version = response["version"]
        dataset.dataset_id = response["dataset_id"]
        return dataset
