# crudwizard/wizard_engine/packager.py

import logging
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

from crudwizard.wizard_engine.results import GeneratedFile
from crudwizard.wizard_engine.sources.base import Packager

logger = logging.getLogger(__name__)


class ZipPackager(Packager):
    """Bundles a generation's files into '{entity}_{YYYYmmdd_HHMMSS}.zip'."""

    def create_archive(self, entity_id: str, files: Sequence[GeneratedFile], output_dir: str) -> str:
        target_dir = Path(output_dir)
        target_dir.mkdir(parents=True, exist_ok=True)

        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        zip_path = target_dir / f"{entity_id}_{stamp}.zip"

        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for generated_file in files:
                # Archive from memory; the content is what was hashed.
                archive.writestr(generated_file.file_name, generated_file.content)

        logger.info("Created package %s with %d files.", zip_path, len(files))
        return str(zip_path)
