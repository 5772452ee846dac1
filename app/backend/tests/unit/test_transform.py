from __future__ import annotations

from io import BytesIO

import pandas as pd

from app.backend.src.services.transform import (
    PlaceholderTransform,
    TransformArtifact,
    TransformContext,
    TransformSuccess,
)


def _context(**overrides) -> TransformContext:
    values = dict(
        input_stream=BytesIO(b"ignored"),
        source_kind="Excel",
        client_id="client-c",
        year=2024,
        month=3,
        original_filename="balance.xlsx",
        job_id="job-1",
    )
    values.update(overrides)
    return TransformContext(**values)


def test_placeholder_emits_single_csv_row():
    outcome = PlaceholderTransform()(_context())

    assert isinstance(outcome, TransformSuccess)
    (artifact,) = outcome.artifacts
    assert artifact.filename == "resultado_2024_03_job-1.csv"
    assert artifact.content_type == "text/csv"
    assert artifact.artifact_kind == "CSV"
    assert artifact.content.decode("utf-8") == (
        "cliente_id,anio,mes,archivo_origen,estado,mensaje\n"
        "client-c,2024,3,balance.xlsx,COMPLETADO,CSV generado por placeholder\n"
    )


def test_placeholder_quotes_filenames_with_commas():
    outcome = PlaceholderTransform()(_context(original_filename="mayor, marzo.pdf", source_kind="PDF"))

    frame = pd.read_csv(BytesIO(outcome.artifacts[0].content))
    assert frame.loc[0, "archivo_origen"] == "mayor, marzo.pdf"
    assert list(frame.columns) == list(PlaceholderTransform.columns)


def test_artifact_extension_falls_back_to_kind():
    assert TransformArtifact(content=b"", filename="salida.CSV").extension == "csv"
    assert (
        TransformArtifact(content=b"", filename="salida", artifact_kind="XLSX").extension
        == "xlsx"
    )
