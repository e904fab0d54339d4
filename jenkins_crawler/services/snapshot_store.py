"""Persist the latest snapshot of a build, overwriting the previous one."""

import json
import logging
import os
from pathlib import Path

from jenkins_crawler.ci_providers.models import BuildSnapshot

logger = logging.getLogger(__name__)


def serialize_snapshot(snapshot: BuildSnapshot) -> str:
    """Tab-indented JSON; key order follows the model so output is deterministic."""
    data = snapshot.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(data, indent="\t", ensure_ascii=False)


def persist_snapshot(snapshot: BuildSnapshot, path: Path) -> bool:
    """
    Write the snapshot to ``path``, replacing any previous content.

    The file is written next to its destination first and then moved into
    place, so readers never see a half-written snapshot.

    Returns:
        True when written, False when the write failed (the error is logged)
    """
    path = Path(path)
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(serialize_snapshot(snapshot), encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError as e:
        logger.error(
            f"Failed to write snapshot for build {snapshot.build_id} to {path}: {e}",
            extra={"build_id": snapshot.build_id, "file": str(path)},
        )
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError:
            pass
        return False

    logger.debug(
        f"snapshot written: {path}",
        extra={"build_id": snapshot.build_id, "file": str(path)},
    )
    return True
