"""Durable snapshot of the records collected by the range scan."""

import json
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path

from pydantic import ValidationError

from ..utils.log import get_logger
from .config import get_config
from .models import Checkpoint

log = get_logger(__name__)


class CheckpointStore:
    """Single JSON file holding a :class:`Checkpoint`.

    None of the methods raise: a missing or corrupt file loads as an empty
    checkpoint, and failed writes or deletes are logged.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path if path is not None else get_config().checkpoint_path

    def load(self) -> Checkpoint:
        if not self.path.exists():
            log.debug("checkpoint_absent", path=str(self.path))
            return Checkpoint()
        try:
            checkpoint = Checkpoint.model_validate_json(self.path.read_bytes())
        except (OSError, ValueError, ValidationError) as e:
            log.warning("checkpoint_corrupt", path=str(self.path), error=str(e))
            return Checkpoint()
        log.info(
            "checkpoint_loaded",
            path=str(self.path),
            collected=len(checkpoint.collected),
            saved_at=checkpoint.saved_at.isoformat() if checkpoint.saved_at else None,
        )
        return checkpoint

    def save(self, checkpoint: Checkpoint) -> None:
        checkpoint.saved_at = datetime.now(UTC)
        payload = json.dumps(
            {
                "all_animes": [
                    rec.model_dump(mode="json", by_alias=True, exclude_unset=True)
                    for rec in checkpoint.collected
                ],
                "timestamp": checkpoint.saved_at.isoformat(),
            },
            ensure_ascii=False,
            indent=2,
        )
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Write next to the target so os.replace stays on one filesystem
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as fh:
                tmp_name = fh.name
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            log.error("checkpoint_save_failed", path=str(self.path), error=str(e))
            return
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
        log.info("checkpoint_saved", path=str(self.path), collected=len(checkpoint.collected))

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            log.error("checkpoint_clear_failed", path=str(self.path), error=str(e))
            return
        log.info("checkpoint_cleared", path=str(self.path))
