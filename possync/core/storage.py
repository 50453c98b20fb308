import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from possync.core.settings import settings

logger = logging.getLogger(__name__)


class IntegrationStore:
    """
    JSON file storage for the integration registry.

    Holds a single document. Writes go to a temporary file in the same
    directory which then replaces the target, so a crash mid-write never
    leaves a truncated document behind.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        self.path = Path(path or settings.INTEGRATIONS_STORE_PATH)

    def load(self) -> Optional[Any]:
        """
        Read the stored document.

        A document that cannot be decoded is moved aside to
        ``<name>.corrupt-<timestamp>`` so the next save does not overwrite
        it, and is treated as absent.

        Returns:
            The decoded JSON document, or None when nothing usable is stored

        Raises:
            OSError: If the file exists but cannot be read
        """
        if not self.path.exists():
            return None

        try:
            with self.path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            quarantined = self._quarantine()
            logger.error(
                f"Failed to decode integrations from {self.path}: {e}. "
                f"The unreadable document was kept as {quarantined}"
            )
            return None

    def _quarantine(self) -> Path:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        target = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        os.replace(self.path, target)
        return target

        try:
            with self.path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load integrations from {self.path}: {e}")
            return None

    def save(self, document: Any) -> None:
        """
        Write the document, replacing any previous one.

        Raises:
            OSError: If the file cannot be written
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
