"""Tests for the command-line entry point."""

import sys
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

import main
from kbassist import RAGResult, Source


@pytest.fixture
def valid_config():
    with patch.object(main.config, "validate") as mock_validate:
        yield mock_validate


def test_build_streamlit_command():
    command = main.build_streamlit_command(
        Path("/srv/app.py"), port=8600, headless=False, address="0.0.0.0"
    )

    assert command == [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        "/srv/app.py",
        "--server.port",
        "8600",
        "--server.address",
        "0.0.0.0",
        "--server.headless",
        "false",
    ]


def test_parse_args_ui_defaults():
    args = main.parse_args(["ui"])

    assert args.command == "ui"
    assert args.port == 8501
    assert args.address == "localhost"
    assert args.headless is True


def test_parse_args_requires_command():
    with pytest.raises(SystemExit):
        main.parse_args([])


def test_main_fails_on_invalid_config():
    with patch.object(
        main.config, "validate", side_effect=ValueError("Missing OPENAI_API_KEY")
    ):
        assert main.main(["ask", "What is the price of Widget A?"]) == 1


def test_ask_prints_answer_and_sources(valid_config, capsys):
    pipeline = Mock()
    pipeline.run_rag.return_value = RAGResult(
        answer="Widget A costs $19.99.",
        sources=[Source(source="Products", text="Product: Widget A", row=2)],
    )

    with patch("kbassist.RAGPipeline.from_config", return_value=pipeline):
        exit_code = main.main(["ask", "What is the price of Widget A?"])

    assert exit_code == 0
    output = capsys.readouterr().out
    assert "Widget A costs $19.99." in output
    assert "Products, row 2: Product: Widget A" in output


def test_ingest_reports_missing_files(valid_config, tmp_path):
    assert main.main(["ingest", str(tmp_path / "missing.csv")]) == 1


def test_ui_launches_streamlit(valid_config):
    with patch("main.subprocess.run", return_value=Mock(returncode=0)) as mock_run:
        assert main.main(["ui", "--port", "8600"]) == 0

    command = mock_run.call_args.args[0]
    assert command[command.index("--server.port") + 1] == "8600"


def test_ingest_refuses_memory_backend(valid_config, tmp_path):
    products = tmp_path / "Products.csv"
    products.write_text("Product,Price\nWidget A,$19.99\n", encoding="utf-8")

    with (
        patch.object(main.config, "VECTOR_BACKEND", "memory"),
        patch("kbassist.IngestionPipeline") as mock_ingestion,
    ):
        assert main.main(["ingest", str(products)]) == 1

    mock_ingestion.assert_not_called()
