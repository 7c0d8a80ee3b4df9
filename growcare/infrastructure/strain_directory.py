import json
import logging
from pathlib import Path
from typing import Any, Mapping

# Bundled catalog shipped with the package
_DEFAULT_CATALOG = Path(__file__).resolve().parent.parent / "data" / "strain_catalog.json"


class JsonStrainDirectory:
    """
    Read-only strain directory backed by a JSON file.

    The file holds ``{"strains": [...]}`` where each entry is either a catalog
    record (``thcContent``/``cbdContent``) or a user strain record
    (``thcPercentage``, ``floweringTime``, ``heightIndoor``, ...). Records are
    returned raw; normalization happens in the strain profile resolver.
    """

    def __init__(self, json_file: str | Path | None = None):
        self.json_path = Path(json_file) if json_file else _DEFAULT_CATALOG
        self._by_id = self._index(self._load_json())

    def _load_json(self) -> list[dict[str, Any]]:
        """Loads the JSON file. Falls back to an empty catalog if missing or invalid."""
        if not self.json_path.exists():
            logging.info("%s not found. Using empty strain catalog.", self.json_path)
            return []

        try:
            with self.json_path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError:
            logging.error("Failed to parse %s. Falling back to empty strain catalog.", self.json_path)
            return []

        if not isinstance(data, dict) or not isinstance(data.get("strains"), list):
            logging.warning("Invalid strain catalog format in %s.", self.json_path)
            return []
        return [entry for entry in data["strains"] if isinstance(entry, dict)]

    @staticmethod
    def _index(entries: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
        index: dict[str, dict[str, Any]] = {}
        for entry in entries:
            strain_id = entry.get("id")
            if strain_id is None:
                logging.warning("Skipping strain entry without id: %s", entry.get("name"))
                continue
            index[str(strain_id)] = entry
        return index

    def lookup(self, strain_id: str) -> Mapping[str, Any] | None:
        return self._by_id.get(str(strain_id))

    def reload(self) -> int:
        """Re-read the catalog file; returns the number of strains loaded."""
        self._by_id = self._index(self._load_json())
        return len(self._by_id)

    def __len__(self) -> int:
        return len(self._by_id)
