import logging

from fastapi import APIRouter

from probehost.api.deps import RegistryDep, RuntimeDep
from probehost.schemas import ProbeBatchIn, ProbeBatchPublic

_log = logging.getLogger(__name__)

router = APIRouter(prefix="/probes", tags=["probes"])


@router.post("/batch")
def run_probe_batch(
    body: ProbeBatchIn, registry: RegistryDep, runtime: RuntimeDep
) -> ProbeBatchPublic:
    """
    Run the requested plugins (all when plugin_ids is omitted) concurrently and
    return one result per plugin. Failed probes come back with ok=false, an
    Error badge line and the classified error.
    """
    selected = registry.select(body.plugin_ids)
    if body.plugin_ids is not None and len(selected) < len(set(body.plugin_ids)):
        unknown = sorted(set(body.plugin_ids) - {p.id for p in selected})
        _log.warning("probe batch: ignoring unknown plugin ids %s", unknown)
    batch = runtime.run_batch(
        [p.descriptor for p in selected],
        timeout_ms=body.timeout_ms,
        batch_id=body.batch_id,
    )
    return ProbeBatchPublic.from_batch(batch)
