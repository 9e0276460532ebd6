"""
Trigger boundary: turns an invocation payload into a scaling job.

Nothing raised by a job crosses this boundary; failures come back as a
response whose ``status`` is "error".
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from .config import JobSettings, ScaleDirection, ScaleRequest, SizingMode
from .errors import ScaleJobError
from .events import JobObserver
from .filters import parse_filter
from .report import JobResult, run_scale_job

logger = logging.getLogger(__name__)

INCORRECT_SCALE_OP = "ERROR incorrect scale_op"
INVALID_PAYLOAD = "ERROR invalid payload"

_SCALE_OPS = {direction.value for direction in ScaleDirection}


class ScalePayload(BaseModel):
    """Invocation payload."""

    dir: str
    scale_op: str
    scale_factor: int = Field(default=1, ge=1)
    filter: str = "gauss"
    target_size: Optional[int] = Field(default=None, ge=1)

    model_config = {"extra": "ignore"}


def handle_event(
    payload: Mapping[str, Any],
    settings: Optional[JobSettings] = None,
    observer: Optional[JobObserver] = None,
) -> Dict[str, Any]:
    """
    Run one scaling job described by ``payload``.

    Args:
        payload: Mapping with ``dir``, ``scale_op``, ``scale_factor``,
            ``filter`` and optionally ``target_size``
        settings: Mount root and engine configuration (defaults from env)
        observer: Receives job progress events

    Returns:
        Response dictionary (see JobResult.to_dict)
    """
    settings = settings or JobSettings.from_env()

    # The operation is judged before the rest of the payload
    scale_op = payload.get("scale_op")
    if scale_op is not None and (
        not isinstance(scale_op, str) or scale_op not in _SCALE_OPS
    ):
        logger.warning("Unrecognised scale_op %r", scale_op)
        return JobResult.error(INCORRECT_SCALE_OP).to_dict()

    try:
        event = ScalePayload.model_validate(dict(payload))
    except ValidationError as exc:
        logger.warning("Rejected payload: %s", exc)
        return JobResult.error(INVALID_PAYLOAD).to_dict()

    engine_config = settings.engine
    if engine_config.sizing_mode is SizingMode.FIXED_TARGET and event.target_size is None:
        logger.warning("Fixed-target sizing requested without target_size")
        return JobResult.error(INVALID_PAYLOAD).to_dict()

    request = ScaleRequest(
        direction=ScaleDirection(event.scale_op),
        factor=event.scale_factor,
        filter_kind=parse_filter(event.filter),
        target_size=event.target_size,
    )
    root = settings.resolve_root(event.dir)
    logger.info(
        "Scaling %s %s by factor %d with filter %s",
        root,
        request.direction.value,
        request.factor,
        request.filter_kind.value,
    )

    try:
        result = run_scale_job(root, request, engine_config, observer=observer)
    except ScaleJobError as exc:
        logger.error("Scaling job for %s failed: %s", root, exc)
        return JobResult.error(f"ERROR {exc}").to_dict()

    return result.to_dict()


__all__ = ["INCORRECT_SCALE_OP", "INVALID_PAYLOAD", "ScalePayload", "handle_event"]
