"""Command-line entry point for KB Assist."""

from __future__ import annotations

import argparse
import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from kbassist.config import config

if TYPE_CHECKING:
    from collections.abc import Sequence
    from logging import Logger

PROJECT_ROOT = Path(__file__).resolve().parent
DEFAULT_APP = PROJECT_ROOT / "app.py"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Build the CLI parser and read command-line arguments."""  # noqa: DOC201
    parser = argparse.ArgumentParser(
        description="Answer product questions from a knowledge base.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ui = subparsers.add_parser("ui", help="Launch the Streamlit chat interface.")
    ui.add_argument(
        "--app",
        type=Path,
        default=DEFAULT_APP,
        help="Path to the Streamlit script (default: app.py).",
    )
    ui.add_argument(
        "--port",
        type=int,
        default=8501,
        help="Port for the Streamlit server (default: 8501).",
    )
    ui.add_argument(
        "--address",
        default="localhost",
        help="Bind address for the Streamlit server (default: localhost).",
    )
    ui.add_argument(
        "--show",
        dest="headless",
        action="store_false",
        help="Open Streamlit in a browser window instead of headless mode.",
    )
    ui.set_defaults(headless=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address.")
    serve.add_argument("--port", type=int, default=8000, help="Port (default: 8000).")

    ingest = subparsers.add_parser("ingest", help="Index knowledge-base files.")
    ingest.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="CSV, XLSX, PDF or TXT files to ingest.",
    )

    ask = subparsers.add_parser("ask", help="Answer a single question.")
    ask.add_argument("question", help="Question to answer.")

    return parser.parse_args(argv)


def build_streamlit_command(
    script_path: Path,
    *,
    port: int,
    headless: bool,
    address: str,
) -> list[str]:
    """Construct the streamlit CLI invocation."""  # noqa: DOC201
    return [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(script_path),
        "--server.port",
        str(port),
        "--server.address",
        address,
        "--server.headless",
        "true" if headless else "false",
    ]


def run_streamlit(command: Sequence[str], logger: Logger) -> int:
    """Execute the configured streamlit command and return its exit code."""  # noqa: DOC201
    try:
        result = subprocess.run(
            command,
            check=False,
            cwd=PROJECT_ROOT,
        )
    except KeyboardInterrupt:
        logger.info("Streamlit stopped by user")
        return 0
    except OSError:
        logger.exception("Unable to launch Streamlit")
        return 1
    return result.returncode


def launch_ui(args: argparse.Namespace, logger: Logger) -> int:
    script_path = (
        args.app if args.app.is_absolute() else (PROJECT_ROOT / args.app)
    ).resolve()
    if not script_path.exists():
        logger.error("Streamlit script not found: %s", script_path)
        return 1

    logger.info(
        "Starting chat UI at http://%s:%s (headless=%s)",
        args.address,
        args.port,
        args.headless,
    )
    command = build_streamlit_command(
        script_path,
        port=args.port,
        headless=args.headless,
        address=args.address,
    )
    return_code = run_streamlit(command, logger)
    if return_code != 0:
        logger.error("Streamlit exited with status %s", return_code)
    return return_code


def serve_api(args: argparse.Namespace, logger: Logger) -> int:
    import uvicorn  # noqa: PLC0415

    from kbassist.api import create_app  # noqa: PLC0415

    logger.info("Starting HTTP API at http://%s:%s", args.host, args.port)
    uvicorn.run(create_app(), host=args.host, port=args.port)
    return 0


def ingest_files(args: argparse.Namespace, logger: Logger) -> int:
    from kbassist import EmbeddingService, IngestionPipeline  # noqa: PLC0415
    from kbassist.vector_store import get_vector_store  # noqa: PLC0415

    missing = [path for path in args.paths if not path.exists()]
    if missing:
        logger.error("Files not found: %s", ", ".join(map(str, missing)))
        return 1

    vector_store = get_vector_store(config.VECTOR_BACKEND)
    if not getattr(vector_store, "persistent", True):
        logger.error(
            "Vector backend %r does not persist; set VECTOR_BACKEND=faiss to ingest",
            config.VECTOR_BACKEND,
        )
        return 1
    vector_store.load()
    pipeline = IngestionPipeline(EmbeddingService(), vector_store)
    try:
        count = pipeline.ingest(args.paths)
    except (OSError, ValueError, RuntimeError):
        logger.exception("Ingestion failed")
        return 1
    logger.info("Ingested %d chunks", count)
    return 0


def ask_question(args: argparse.Namespace, logger: Logger) -> int:
    from kbassist import RAGPipeline, RAGPipelineError  # noqa: PLC0415

    try:
        result = RAGPipeline.from_config().run_rag(args.question)
    except RAGPipelineError as exc:
        logger.error("Question processing failed: %s", exc)  # noqa: TRY400
        return 1
    except (ValueError, RuntimeError):
        logger.exception("Question processing failed")
        return 1

    print(result.answer)  # noqa: T201
    for source in result.sources or []:
        row = f", row {source.row}" if source.row is not None else ""
        print(f"  - {source.source}{row}: {source.text}")  # noqa: T201
    return 0


COMMANDS = {
    "ui": launch_ui,
    "serve": serve_api,
    "ingest": ingest_files,
    "ask": ask_question,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Validate configuration and run the selected command."""  # noqa: DOC201
    args = parse_args(argv)

    config.setup_logging()
    logger = config.get_logger(__name__)

    try:
        config.validate()
    except ValueError:
        logger.exception("Configuration invalid")
        return 1

    return COMMANDS[args.command](args, logger)


if __name__ == "__main__":
    sys.exit(main())
