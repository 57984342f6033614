# crudwizard/wizard_engine/store.py

import logging
import os
import tempfile
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List, NamedTuple, Tuple

from pydantic import ValidationError

from crudwizard.wizard_engine.core.config_hasher import compute_config_hash
from crudwizard.wizard_engine.errors import ConfigDeserializationError, NotFoundError
from crudwizard.wizard_engine.models import WizardConfig, utcnow
from crudwizard.wizard_engine.results import GenerationSummary

logger = logging.getLogger(__name__)


class StoredRecord(NamedTuple):
    key: str
    value: str
    written_at: datetime


class KeyValueStore(ABC):
    """
    Minimal persistence contract behind the configuration store.
    Records are create-only: a key is written once and never replaced.
    """
    @abstractmethod
    def put(self, key: str, value: str) -> None:
        """Creates a record. Raises FileExistsError if the key is taken."""
        pass

    @abstractmethod
    def get(self, key: str) -> str:
        """Returns the record's value. Raises NotFoundError if absent."""
        pass

    @abstractmethod
    def scan(self) -> Iterator[StoredRecord]:
        """Iterates over every stored record."""
        pass


class FileKeyValueStore(KeyValueStore):
    """One '<key>.json' file per record inside a directory."""
    SUFFIX = ".json"

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        if not self.directory.exists():
            self.directory.mkdir(parents=True, exist_ok=True)
            logger.info("Created configuration directory: %s", self.directory)

    def _path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid record key: {key!r}")
        return self.directory / f"{key}{self.SUFFIX}"

    def put(self, key: str, value: str) -> None:
        target = self._path_for(key)
        if target.exists():
            raise FileExistsError(f"Record already exists: {key}")

        # Write to a temp file in the same directory, then rename into place,
        # so a concurrent reader never sees a partial record.
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp-", suffix=self.SUFFIX)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp_file:
                tmp_file.write(value)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())
            os.replace(tmp_name, target)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def get(self, key: str) -> str:
        path = self._path_for(key)
        if not path.is_file():
            raise NotFoundError(f"Configuration not found: {key}")
        return path.read_text(encoding="utf-8")

    def scan(self) -> Iterator[StoredRecord]:
        for path in sorted(self.directory.glob(f"*{self.SUFFIX}")):
            if path.name.startswith("."):
                continue
            written_at = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            yield StoredRecord(path.stem, path.read_text(encoding="utf-8"), written_at)


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self):
        self._records: Dict[str, Tuple[str, datetime]] = {}

    def put(self, key: str, value: str) -> None:
        if key in self._records:
            raise FileExistsError(f"Record already exists: {key}")
        self._records[key] = (value, utcnow())

    def get(self, key: str) -> str:
        if key not in self._records:
            raise NotFoundError(f"Configuration not found: {key}")
        return self._records[key][0]

    def scan(self) -> Iterator[StoredRecord]:
        for key, (value, written_at) in list(self._records.items()):
            yield StoredRecord(key, value, written_at)


class ConfigurationStore:
    """
    Persists wizard configurations under freshly generated identifiers.

    Saving never updates a record in place: every save, even for the same
    entity, creates a new identifier.
    """
    def __init__(self, backend: KeyValueStore):
        self.backend = backend

    def save(self, config: WizardConfig) -> str:
        """
        Stores a copy of the configuration under a new identifier.

        Returns:
            The generated identifier.
        """
        config_id = str(uuid.uuid4())
        record = config.model_copy(update={"config_id": config_id}, deep=True)
        record.config_hash = compute_config_hash(record)

        self.backend.put(config_id, record.model_dump_json(indent=2))
        logger.info("Configuration for %s saved with id %s", config.entity_id, config_id)
        return config_id

    def load(self, config_id: str) -> WizardConfig:
        """
        Raises:
            NotFoundError: No record exists for the identifier.
            ConfigDeserializationError: The record is empty or corrupt.
        """
        raw = self.backend.get(config_id)
        config = self._parse(raw, config_id)
        logger.info("Configuration %s loaded", config_id)
        return config

    def history(self, entity_id: str) -> List[GenerationSummary]:
        """Summaries of every configuration saved for an entity, newest first."""
        summaries: List[GenerationSummary] = []

        for record in self.backend.scan():
            try:
                config = self._parse(record.value, record.key)
            except ConfigDeserializationError as e:
                logger.warning("Skipping unreadable configuration record %s: %s", record.key, e)
                continue

            if config.entity_id == entity_id:
                summaries.append(GenerationSummary(
                    config_id=record.key,
                    entity_id=config.entity_id,
                    generated_at=record.written_at,
                    config_hash=config.config_hash,
                ))

        logger.info("Found %d saved configurations for %s", len(summaries), entity_id)
        return sorted(summaries, key=lambda s: s.generated_at, reverse=True)

    @staticmethod
    def _parse(raw: str, config_id: str) -> WizardConfig:
        if not raw or not raw.strip():
            raise ConfigDeserializationError(f"Configuration record {config_id} is empty.")
        try:
            return WizardConfig.model_validate_json(raw)
        except ValidationError as e:
            raise ConfigDeserializationError(f"Configuration record {config_id} is corrupt: {e}") from e
