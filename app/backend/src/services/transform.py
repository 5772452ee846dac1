"""Transform step contract and the placeholder implementation.

A transform receives an opened input stream plus the job's context and returns
either :class:`TransformSuccess` with zero or more artifacts or
:class:`TransformFailure` with a human-readable reason. Transforms are
synchronous and must not write anywhere; the pipeline worker persists what
they return.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, BinaryIO, Protocol, Union

import pandas as pd

CSV_CONTENT_TYPE = "text/csv"


@dataclass(frozen=True)
class TransformContext:
    """Everything a transform may look at for one job."""

    input_stream: BinaryIO
    source_kind: str
    client_id: str
    year: int
    month: int
    original_filename: str
    job_id: str
    prefill_values: Any = field(default_factory=dict)
    transformation_rules: Any = None


@dataclass(frozen=True)
class TransformArtifact:
    content: bytes
    filename: str
    content_type: str = CSV_CONTENT_TYPE
    artifact_kind: str = "CSV"

    @property
    def extension(self) -> str:
        _, dot, ext = self.filename.rpartition(".")
        return ext.lower() if dot else self.artifact_kind.lower()


@dataclass(frozen=True)
class TransformSuccess:
    artifacts: list[TransformArtifact] = field(default_factory=list)


@dataclass(frozen=True)
class TransformFailure:
    reason: str


TransformOutcome = Union[TransformSuccess, TransformFailure]


class TransformStep(Protocol):
    """Callable turning one input document into output artifacts."""

    def __call__(self, context: TransformContext) -> TransformOutcome:
        ...


class PlaceholderTransform:
    """Emit a single fixed-format CSV row describing the input.

    Stands in for the Excel/PDF parsing rules, which are not defined yet. It
    never fails and ignores the input bytes.
    """

    columns = ("cliente_id", "anio", "mes", "archivo_origen", "estado", "mensaje")

    def __call__(self, context: TransformContext) -> TransformOutcome:
        frame = pd.DataFrame(
            [
                {
                    "cliente_id": context.client_id,
                    "anio": context.year,
                    "mes": context.month,
                    "archivo_origen": context.original_filename,
                    "estado": "COMPLETADO",
                    "mensaje": "CSV generado por placeholder",
                }
            ],
            columns=list(self.columns),
        )
        content = frame.to_csv(index=False, lineterminator="\n").encode("utf-8")
        filename = (
            f"resultado_{context.year:04d}_{context.month:02d}_{context.job_id}.csv"
        )
        return TransformSuccess(
            artifacts=[TransformArtifact(content=content, filename=filename)]
        )


__all__ = [
    "CSV_CONTENT_TYPE",
    "PlaceholderTransform",
    "TransformArtifact",
    "TransformContext",
    "TransformFailure",
    "TransformOutcome",
    "TransformStep",
    "TransformSuccess",
]
