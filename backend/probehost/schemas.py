"""
Pydantic schemas for the probehost HTTP API.
"""

from pydantic import BaseModel, Field

from probehost.core.registry import LoadedPlugin
from probehost.engines import ErrorKind, ProbeBatch, ProbeRunRecord, RunError
from probehost.engines.output import LineItem

# ---------------------------------------------------------------------------
# Plugins
# ---------------------------------------------------------------------------


class ManifestLinePublic(BaseModel):
    type: str
    label: str
    scope: str


class PluginMetaPublic(BaseModel):
    """One entry of GET /plugins/."""

    id: str
    name: str
    icon_url: str
    brand_color: str | None
    lines: list[ManifestLinePublic]
    primary_candidates: list[str]

    @classmethod
    def from_plugin(cls, plugin: LoadedPlugin) -> "PluginMetaPublic":
        return cls(
            id=plugin.manifest.id,
            name=plugin.manifest.name,
            icon_url=plugin.icon_data_url,
            brand_color=plugin.manifest.brand_color,
            lines=[
                ManifestLinePublic(type=line.type, label=line.label, scope=line.scope)
                for line in plugin.manifest.lines
            ],
            primary_candidates=plugin.primary_candidates,
        )


# ---------------------------------------------------------------------------
# Probes
# ---------------------------------------------------------------------------


class ProbeBatchIn(BaseModel):
    """Body for POST /probes/batch. plugin_ids=None runs every plugin."""

    batch_id: str | None = Field(default=None, max_length=128)
    plugin_ids: list[str] | None = None
    timeout_ms: int | None = Field(default=None, gt=0, le=120_000)


class ProbeErrorPublic(BaseModel):
    kind: ErrorKind
    detail: str


class ProbeResultPublic(BaseModel):
    plugin_id: str
    display_name: str
    ok: bool
    lines: list[LineItem]
    error: ProbeErrorPublic | None = None
    elapsed_ms: int

    @classmethod
    def from_record(cls, record: ProbeRunRecord) -> "ProbeResultPublic":
        result = record.result
        if isinstance(result, RunError):
            return cls(
                plugin_id=record.plugin_id,
                display_name=record.display_name,
                ok=False,
                lines=result.as_output().lines,
                error=ProbeErrorPublic(kind=result.kind, detail=result.detail),
                elapsed_ms=record.elapsed_ms,
            )
        return cls(
            plugin_id=record.plugin_id,
            display_name=record.display_name,
            ok=True,
            lines=result.output.lines,
            elapsed_ms=record.elapsed_ms,
        )


class ProbeBatchPublic(BaseModel):
    batch_id: str
    plugin_ids: list[str]
    results: list[ProbeResultPublic]

    @classmethod
    def from_batch(cls, batch: ProbeBatch) -> "ProbeBatchPublic":
        return cls(
            batch_id=batch.batch_id,
            plugin_ids=batch.plugin_ids,
            results=[ProbeResultPublic.from_record(r) for r in batch.results],
        )
