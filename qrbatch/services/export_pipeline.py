"""Export pipeline for persisted batches.

Builds two artifacts from a batch and uploads them to blob storage:
- codes.csv   one row per unit code with its master carton position
- report.pdf  single-page summary of quantities and packaging values

The two artifacts are produced concurrently and independently. A failure in
one is recorded in its result and never stops the other; the batch itself is
already committed and stays valid whatever happens here.
"""

import asyncio
import csv
import io
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from qrbatch.core.identifiers import identifier_timestamp
from qrbatch.infra.logging import get_logger
from qrbatch.infra.storage import BlobStorage
from qrbatch.models import Batch
from qrbatch.schemas.batch import ExportStatus

logger = get_logger(__name__)

CSV_HEADER = ("code", "master_id", "unit_index_within_master", "generated_at")
CSV_KIND = "csv"
PDF_KIND = "pdf"


def artifact_path(tenant_id: str, batch_id: str, kind: str) -> str:
    """Blob path for a batch artifact. Same batch and kind always map to the same path."""
    filename = "codes.csv" if kind == CSV_KIND else "report.pdf"
    return f"{tenant_id}/batches/{batch_id}/{filename}"


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def build_csv_manifest(batch: Batch) -> bytes:
    """Render the per-unit manifest.

    Rows follow code generation order. Codes fill master cartons in order:
    unit_index_within_master runs 1..units_per_master, then the next master
    starts again at 1.
    """
    fallback_time = _iso(batch.created_at or datetime.now(timezone.utc))

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    for index, code in enumerate(batch.codes):
        master_index, unit_index = batch.master_position(index)
        generated_at = identifier_timestamp(code)
        writer.writerow(
            (
                code,
                batch.master_ids[master_index],
                unit_index,
                _iso(generated_at) if generated_at else fallback_time,
            )
        )

    return buffer.getvalue().encode("utf-8")


def build_report_lines(batch: Batch, generated_at: datetime | None = None) -> list[str]:
    """Text content of the summary report."""
    generated_at = generated_at or datetime.now(timezone.utc)
    return [
        f"Batch ID: {batch.id}",
        f"Order ID: {batch.order_id}",
        f"Product ID: {batch.product_id}",
        f"Status: {batch.status}",
        "",
        f"Total units: {batch.total_units}",
        f"Buffer units: {batch.buffer_units}",
        f"Total unique QRs: {batch.total_unique_qrs}",
        f"Masters count: {batch.masters_count}",
        "",
        f"Units per master: {batch.units_per_master}",
        f"Buffer per 1000: {batch.buffer_per_1000}",
        "",
        f"Batch created at: {_iso(batch.created_at) if batch.created_at else '-'}",
        f"Report generated at: {_iso(generated_at)}",
    ]


def build_report_pdf(batch: Batch, generated_at: datetime | None = None) -> bytes:
    """Render the summary report as a one-page PDF."""
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    _, height = A4

    pdf.setTitle(f"Batch {batch.id}")
    pdf.setFont("Helvetica-Bold", 20)
    pdf.drawString(50, height - 60, "QR BATCH REPORT")

    pdf.setFont("Helvetica", 12)
    y = height - 100
    for line in build_report_lines(batch, generated_at):
        pdf.drawString(50, y, line)
        y -= 20

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


@dataclass(frozen=True)
class ArtifactResult:
    """Outcome of building and uploading one artifact."""

    kind: str
    blob_path: str
    generated: bool
    location: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ExportResult:
    batch_id: str
    csv: ArtifactResult
    pdf: ArtifactResult
    duration_ms: int = 0

    @property
    def all_generated(self) -> bool:
        return self.csv.generated and self.pdf.generated

    def to_export_status(self) -> ExportStatus:
        errors = {
            result.kind: result.error
            for result in (self.csv, self.pdf)
            if result.error is not None
        }
        return ExportStatus(
            csv_generated=self.csv.generated,
            pdf_generated=self.pdf.generated,
            csv_url=self.csv.location,
            pdf_url=self.pdf.location,
            errors=errors,
        )


class ExportPipeline:
    """Builds and uploads the export artifacts for a batch."""

    def __init__(self, storage: BlobStorage) -> None:
        self._storage = storage

    async def export_batch(self, batch: Batch) -> ExportResult:
        """Produce both artifacts for a persisted batch.

        Never raises for artifact failures: each failure is reported in the
        corresponding ArtifactResult.
        """
        start = time.perf_counter()

        csv_result, pdf_result = await asyncio.gather(
            self._export_artifact(batch, CSV_KIND, "text/csv"),
            self._export_artifact(batch, PDF_KIND, "application/pdf"),
        )

        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "Batch export finished",
            tenant_id=batch.tenant_id,
            batch_id=batch.id,
            csv_generated=csv_result.generated,
            pdf_generated=pdf_result.generated,
            duration_ms=duration_ms,
        )

        return ExportResult(
            batch_id=batch.id,
            csv=csv_result,
            pdf=pdf_result,
            duration_ms=duration_ms,
        )

    async def _export_artifact(self, batch: Batch, kind: str, content_type: str) -> ArtifactResult:
        blob_path = artifact_path(batch.tenant_id, batch.id, kind)

        try:
            if kind == CSV_KIND:
                data = await asyncio.to_thread(build_csv_manifest, batch)
            else:
                data = await asyncio.to_thread(build_report_pdf, batch)

            location = await self._storage.upload_bytes(
                data=data,
                blob_path=blob_path,
                tenant_id=batch.tenant_id,
                content_type=content_type,
            )
        except Exception as e:
            logger.error(
                "Artifact export FAILED",
                tenant_id=batch.tenant_id,
                batch_id=batch.id,
                kind=kind,
                error_type=type(e).__name__,
                error_message=str(e),
                exc_info=True,
            )
            return ArtifactResult(
                kind=kind,
                blob_path=blob_path,
                generated=False,
                error=f"{kind} export failed: {e}",
            )

        return ArtifactResult(
            kind=kind,
            blob_path=blob_path,
            generated=True,
            location=location,
        )
