"""API routes for SheetMatch."""

import logging
from typing import Iterator, Optional
from urllib.parse import quote

from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.responses import Response, StreamingResponse
from pydantic import BaseModel, Field

from ..config import settings
from ..engine import AuditReport, ReconcileError, Table
from ..llm import (
    AssistantConfig,
    AssistantConfigStore,
    AssistantError,
    CellSelection,
    ChatMessage,
    TableAssistant,
    build_client,
    build_context,
    format_selection,
)
from ..ops import ReconcileRequest, ReconcileRunner
from ..sheets import TableDecodeError, output_name_for, read_table_bytes, table_to_xlsx_bytes

logger = logging.getLogger(__name__)

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# Global instances
_runner: Optional[ReconcileRunner] = None
_config_store: Optional[AssistantConfigStore] = None


def get_runner() -> ReconcileRunner:
    """Get the global reconcile runner."""
    global _runner
    if _runner is None:
        _runner = ReconcileRunner()
    return _runner


def get_config_store() -> AssistantConfigStore:
    """Get the global assistant config store."""
    global _config_store
    if _config_store is None:
        _config_store = AssistantConfigStore()
    return _config_store


def _content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and the UTF-8 name (RFC 5987)."""
    fallback = filename.encode("ascii", "replace").decode("ascii")
    for char in '?"\\':
        fallback = fallback.replace(char, "_")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


class ExportRequest(BaseModel):
    """Request to export a table as XLSX."""

    table: Table
    filename: str = ""


class ContextRequest(BaseModel):
    """Request to render selected cells as assistant context."""

    # Cells are "row,col" coordinates into the matching table.
    table_a: Optional[Table] = None
    cells_a: list[str] = Field(default_factory=list)
    table_b: Optional[Table] = None
    cells_b: list[str] = Field(default_factory=list)


class AssistantChatRequest(BaseModel):
    """Request for a streamed assistant reply."""

    message: str = ""
    history: list[ChatMessage] = Field(default_factory=list)
    context: str = ""


# Table endpoints


@router.post("/tables/parse")
async def parse_table(file: UploadFile = File(...), sheet_name: Optional[str] = None):
    """Decode an uploaded XLSX or CSV file into a table."""
    data = await file.read()
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File exceeds upload limit of {settings.max_upload_bytes} bytes",
        )

    try:
        table = read_table_bytes(data, file.filename or "", sheet_name)
    except TableDecodeError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "table": table.model_dump(),
        "row_count": table.row_count,
        "preview": table.preview(settings.preview_rows),
    }


@router.post("/tables/export")
async def export_table(request: ExportRequest):
    """Encode a table as an XLSX download."""
    filename = output_name_for(request.filename or request.table.name or "table", settings.output_suffix)
    content = table_to_xlsx_bytes(request.table)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": _content_disposition(filename)},
    )


# Reconciliation endpoints


@router.post("/reconcile")
async def run_reconcile(request: ReconcileRequest):
    """Update or audit table A against table B."""
    try:
        result = get_runner().run_tables(request)
    except ReconcileError as e:
        raise HTTPException(status_code=400, detail=str(e))

    response = {
        "mode": result.mode.value,
        "summary": result.summary,
        "duration_ms": result.duration_ms,
        "report": result.report.model_dump(),
    }
    if isinstance(result.report, AuditReport):
        response["inspection_columns"] = result.report.inspection_columns
    return response


# Assistant endpoints


@router.get("/assistant/config")
async def get_assistant_config():
    """Get the assistant configuration with the API key masked."""
    return get_config_store().load().masked()


@router.put("/assistant/config")
async def save_assistant_config(config: AssistantConfig):
    """Persist the assistant configuration."""
    try:
        saved = get_config_store().save(config)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "ok", "config": saved.masked()}


@router.post("/assistant/context")
async def build_assistant_context(request: ContextRequest):
    """Render the cells selected in table A and table B as one markdown context."""
    sections = []
    cell_counts = {}
    for label, table, cells in (
        ("a", request.table_a, request.cells_a),
        ("b", request.table_b, request.cells_b),
    ):
        if table is None:
            if cells:
                raise HTTPException(
                    status_code=400, detail=f"cells_{label} given without table_{label}"
                )
            cell_counts[label] = 0
            continue
        try:
            selection = CellSelection.from_keys(cells)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid cell coordinate: {e}")
        cell_counts[label] = len(selection)
        sections.append(format_selection(table, selection, f"Table {label.upper()}"))

    return {"context": build_context(sections), "cell_counts": cell_counts}


@router.post("/assistant/chat")
async def assistant_chat(request: AssistantChatRequest):
    """Stream an assistant reply as plain text."""
    config = get_config_store().load()
    try:
        client = build_client(config)
    except AssistantError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not (request.message.strip() or request.context.strip()):
        raise HTTPException(status_code=400, detail="Message is empty")

    assistant = TableAssistant(client)
    assistant.messages = list(request.history)
    assistant.attach(request.context)

    def stream() -> Iterator[str]:
        try:
            yield from assistant.send(request.message)
        except AssistantError as e:
            logger.error(f"Assistant stream failed: {e}")
            yield f"\n[error] {e}"

    return StreamingResponse(stream(), media_type="text/plain; charset=utf-8")


# Health check


@router.get("/health")
async def health_check():
    """Health check endpoint with non-secret diagnostics."""
    config = get_config_store().load()
    return {
        "status": "ok",
        "service": "sheetmatch",
        "config": {
            "assistant_provider": config.provider,
            "assistant_model": config.model_name,
            "assistant_key_present": bool(config.api_key),
            "new_column_suffix": settings.new_column_suffix,
            "output_suffix": settings.output_suffix,
        },
    }
