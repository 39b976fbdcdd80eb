"""Tests for API routes."""

import io
from unittest.mock import patch
from urllib.parse import quote

import openpyxl
import pytest
from fastapi.testclient import TestClient

from sheetmatch.api import create_app
from sheetmatch.llm import AssistantConfig, AssistantError, LLMClient


class FakeClient(LLMClient):
    """LLM client that replays fixed chunks and records its input."""

    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error
        self.calls = []

    def stream_chat(self, messages, system=None):
        self.calls.append((list(messages), system))
        yield from self.chunks
        if self.error:
            raise self.error


@pytest.fixture
def client(config_store):
    """Test client with the assistant config kept in a temp file."""
    with patch("sheetmatch.api.routes.get_config_store", return_value=config_store):
        yield TestClient(create_app())


def reconcile_body(table_a, table_b, mode="update", value_a=None):
    return {
        "table_a": table_a.model_dump(),
        "table_b": table_b.model_dump(),
        "selection": {
            "key_a": "id",
            "value_a": value_a or {"kind": "existing", "name": "val"},
            "key_b": "id",
            "value_b": "v",
        },
        "mode": mode,
    }


class TestHealthEndpoint:
    """Tests for the health check."""

    def test_health_check(self, client):
        """Test the health payload."""
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "sheetmatch"
        assert "assistant_key_present" in data["config"]
        assert "output_suffix" in data["config"]

    def test_health_never_exposes_key(self, client, config_store):
        """Test that the API key itself is not returned."""
        config_store.save(AssistantConfig(api_key="sk-secret-value", model_name="m"))

        response = client.get("/api/health")

        assert "sk-secret-value" not in response.text
        assert response.json()["config"]["assistant_key_present"] is True


class TestTableEndpoints:
    """Tests for parsing and exporting tables."""

    def test_parse_csv_upload(self, client):
        """Test that an uploaded CSV comes back as a table with a preview."""
        response = client.post(
            "/api/tables/parse",
            files={"file": ("orders.csv", b"id,val\n1,\n2,x\n", "text/csv")},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["table"]["headers"] == ["id", "val"]
        assert data["table"]["rows"] == [[1, None], [2, "x"]]
        assert data["table"]["name"] == "orders.csv"
        assert data["row_count"] == 2
        assert data["preview"][0] == {"id": 1, "val": None}

    def test_parse_unsupported_file(self, client):
        """Test that an unsupported upload is a client error."""
        response = client.post(
            "/api/tables/parse",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 400
        assert "Unsupported file type" in response.json()["detail"]

    def test_parse_too_large(self, client):
        """Test the upload size limit."""
        with patch("sheetmatch.api.routes.settings.max_upload_bytes", 4):
            response = client.post(
                "/api/tables/parse",
                files={"file": ("orders.csv", b"id,val\n1,2\n", "text/csv")},
            )

        assert response.status_code == 413

    def test_export_xlsx(self, client, table_a):
        """Test that a table downloads as a workbook."""
        response = client.post(
            "/api/tables/export",
            json={"table": table_a.model_dump(), "filename": "orders.csv"},
        )

        assert response.status_code == 200
        assert 'filename="orders_updated.xlsx"' in response.headers["content-disposition"]
        sheet = openpyxl.load_workbook(io.BytesIO(response.content)).active
        assert sheet.title == "Updated_Sheet"
        assert [c.value for c in sheet[1]] == ["id", "val"]

    def test_export_non_ascii_name(self, client):
        """Test that a Chinese file name is sent in the UTF-8 filename* form."""
        table = {"headers": ["id"], "rows": [[1]], "name": "订单.xlsx"}

        response = client.post("/api/tables/export", json={"table": table})

        assert response.status_code == 200
        disposition = response.headers["content-disposition"]
        assert "filename*=UTF-8''" + quote("订单_updated.xlsx", safe="") in disposition
        assert 'filename="___updated.xlsx"' in disposition

    def test_export_name_with_quote(self, client, table_a):
        """Test that quotes in the name cannot break the header."""
        response = client.post(
            "/api/tables/export",
            json={"table": table_a.model_dump(), "filename": 'say "hi".csv'},
        )

        assert response.status_code == 200
        disposition = response.headers["content-disposition"]
        assert 'filename="say _hi__updated.xlsx"' in disposition
        assert "filename*=UTF-8''say%20%22hi%22_updated.xlsx" in disposition


class TestReconcileEndpoint:
    """Tests for /api/reconcile."""

    def test_update(self, client, table_a, table_b):
        """Test an update run through the API."""
        response = client.post("/api/reconcile", json=reconcile_body(table_a, table_b))

        assert response.status_code == 200
        data = response.json()
        assert data["mode"] == "update"
        assert data["report"]["writes"] == 1
        assert data["report"]["not_found_keys"] == []
        assert data["report"]["updated_table"]["rows"] == [[1, "a"], [2, "x"]]
        assert data["summary"].startswith("Update: 1 cell(s)")
        assert "inspection_columns" not in data

    def test_update_new_column(self, client, table_a, table_b):
        """Test creating a column through the API."""
        body = reconcile_body(table_a, table_b, value_a={"kind": "new", "adjacent_to": "id"})

        response = client.post("/api/reconcile", json=body)

        report = response.json()["report"]
        assert report["created_column"] is True
        assert report["updated_table"]["headers"] == ["id", "id (updated)", "val"]

    def test_audit(self, client, table_a, table_b):
        """Test an audit run through the API."""
        response = client.post("/api/reconcile", json=reconcile_body(table_a, table_b, "audit"))

        assert response.status_code == 200
        data = response.json()
        assert data["report"]["matches"] == 1
        assert data["report"]["mismatches"] == 1
        assert data["report"]["mismatched_entries"][0]["a_row"] == {"id": 1, "val": None}
        assert data["inspection_columns"] == ["id"]

    def test_missing_column(self, client, table_a, table_b):
        """Test that a bad selection is a client error."""
        body = reconcile_body(table_a, table_b, value_a={"kind": "existing", "name": "nope"})

        response = client.post("/api/reconcile", json=body)

        assert response.status_code == 400
        assert "Column 'nope' not found" in response.json()["detail"]

    def test_invalid_row_range(self, client, table_a, table_b):
        """Test that an out-of-bounds row range is a client error."""
        body = reconcile_body(table_a, table_b)
        body["row_range"] = {"start": 1, "end": 5}

        response = client.post("/api/reconcile", json=body)

        assert response.status_code == 400


class TestAssistantConfigEndpoints:
    """Tests for the assistant configuration endpoints."""

    def test_save_and_load_masked(self, client):
        """Test that saved keys are returned masked."""
        payload = {
            "provider": "openai",
            "api_key": "sk-1234567890abcd",
            "base_url": "https://example.test/v1",
            "model_name": "gpt-test",
        }

        saved = client.put("/api/assistant/config", json=payload)
        loaded = client.get("/api/assistant/config")

        assert saved.status_code == 200
        assert saved.json()["status"] == "ok"
        data = loaded.json()
        assert data["api_key"] == "sk-...abcd"
        assert data["model_name"] == "gpt-test"
        assert data["is_complete"] is True

    def test_unknown_provider(self, client):
        """Test that unsupported providers are rejected."""
        response = client.put("/api/assistant/config", json={"provider": "other"})

        assert response.status_code == 400


class TestAssistantContextEndpoint:
    """Tests for /api/assistant/context."""

    def test_renders_single_table(self, client, table_a):
        """Test that a selection from table A alone is rendered as markdown."""
        response = client.post(
            "/api/assistant/context",
            json={"table_a": table_a.model_dump(), "cells_a": ["1,1"]},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["cell_counts"] == {"a": 1, "b": 0}
        assert data["context"] == "## Table A (selected data)\n| val |\n| --- |\n| x |"

    def test_renders_both_tables(self, client, table_a, table_b):
        """Test that selections from both tables are joined into one context."""
        response = client.post(
            "/api/assistant/context",
            json={
                "table_a": table_a.model_dump(),
                "cells_a": ["0,0", "0,1"],
                "table_b": table_b.model_dump(),
                "cells_b": ["0,1"],
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["cell_counts"] == {"a": 2, "b": 1}
        assert data["context"] == (
            "## Table A (selected data)\n| id | val |\n| --- | --- |\n| 1 |  |\n"
            "## Table B (selected data)\n| v |\n| --- |\n| a |"
        )

    def test_empty_selection(self, client, table_a):
        """Test that selecting nothing gives an empty context."""
        response = client.post("/api/assistant/context", json={"table_a": table_a.model_dump()})

        assert response.status_code == 200
        assert response.json() == {"context": "", "cell_counts": {"a": 0, "b": 0}}

    def test_cells_without_table(self, client):
        """Test that coordinates need the table they point into."""
        response = client.post("/api/assistant/context", json={"cells_b": ["0,0"]})

        assert response.status_code == 400
        assert "table_b" in response.json()["detail"]

    def test_invalid_coordinate(self, client, table_a):
        """Test that malformed coordinates are rejected."""
        response = client.post(
            "/api/assistant/context",
            json={"table_a": table_a.model_dump(), "cells_a": ["one,two"]},
        )

        assert response.status_code == 400


class TestAssistantChatEndpoint:
    """Tests for /api/assistant/chat."""

    def test_requires_configuration(self, client, config_store):
        """Test that chatting without a key is refused."""
        config_store.save(AssistantConfig(provider="openai", api_key="", model_name="m"))

        response = client.post("/api/assistant/chat", json={"message": "hi"})

        assert response.status_code == 400
        assert "not configured" in response.json()["detail"]

    def test_empty_message(self, client):
        """Test that a message with no content and no context is refused."""
        with patch("sheetmatch.api.routes.build_client", return_value=FakeClient([])):
            response = client.post("/api/assistant/chat", json={"message": "  "})

        assert response.status_code == 400

    def test_streams_reply(self, client):
        """Test that the reply is streamed and context is sent with the message."""
        fake = FakeClient(["Hello", " there"])

        with patch("sheetmatch.api.routes.build_client", return_value=fake):
            response = client.post(
                "/api/assistant/chat",
                json={
                    "message": "What is this?",
                    "context": "| id |\n| --- |\n| 1 |",
                    "history": [
                        {"role": "user", "content": "hi"},
                        {"role": "assistant", "content": "hello"},
                    ],
                },
            )

        assert response.status_code == 200
        assert response.text == "Hello there"
        messages, system = fake.calls[0]
        assert [m.role for m in messages] == ["user", "assistant", "user"]
        assert messages[-1].content == "| id |\n| --- |\n| 1 |\n\nWhat is this?"
        assert system

    def test_stream_error_is_reported_inline(self, client):
        """Test that a failure mid-stream is appended to the text."""
        fake = FakeClient(["partial"], error=AssistantError("API Error: 500"))

        with patch("sheetmatch.api.routes.build_client", return_value=fake):
            response = client.post("/api/assistant/chat", json={"message": "hi"})

        assert response.status_code == 200
        assert response.text == "partial\n[error] API Error: 500"
