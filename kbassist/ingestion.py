"""Offline knowledge-base ingestion: load, chunk, embed and index files."""

import csv
import re
from pathlib import Path
from typing import Any

import pandas as pd
import pypdf

from .config import config
from .embeddings import EmbeddingService
from .models import DocumentChunk
from .vector_store import VectorStore

logger = config.get_logger(__name__)

CHARS_PER_TOKEN = 4
MIN_ROW_TOKENS = 50
CONTEXT_CHUNK_TOKENS = 800
_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")
_WHITESPACE = re.compile(r"\s+")


def estimate_tokens(text: str) -> int:
    return -(-len(text) // CHARS_PER_TOKEN)


def clean_text(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def chunk_sentences(text: str, max_tokens: int = CONTEXT_CHUNK_TOKENS) -> list[str]:
    """Pack whole sentences into chunks of roughly ``max_tokens`` tokens.

    Returns:
        List of non-empty chunk strings.
    """
    chunks: list[str] = []
    current = ""
    for sentence in _SENTENCE_END.split(text):
        too_long = estimate_tokens(current) + estimate_tokens(sentence) > max_tokens
        if current and too_long:
            chunks.append(current.strip())
            current = sentence
        else:
            current = f"{current} {sentence}" if current else sentence
    if current.strip():
        chunks.append(current.strip())
    return [chunk for chunk in chunks if chunk]


class DocumentLoader:
    """Handles loading of PDF and TXT documents."""

    @staticmethod
    def load_pdf(file_path: Path) -> str:
        """Load text content from a PDF file.

        Returns:
            The extracted text content from the PDF as a string.
        """
        try:
            with file_path.open("rb") as file:
                pdf_reader = pypdf.PdfReader(file)
                text = ""
                for page_num, page in enumerate(pdf_reader.pages):
                    page_text = page.extract_text()
                    text += f"\n--- Page {page_num + 1} ---\n{page_text}\n"
        except Exception:
            logger.exception("Error loading PDF %s", file_path)
            raise
        else:
            return text

    @staticmethod
    def load_txt(file_path: Path) -> str:
        """Load text content from a TXT file.

        Returns:
            The extracted text content from the TXT file as a string.
        """
        try:
            text = file_path.read_text(encoding="utf-8")
        except Exception:
            logger.exception("Error loading TXT %s", file_path)
            raise
        else:
            return text


class TextChunker:
    """Handles text chunking with fixed length and overlap strategy."""

    def __init__(self, chunk_size: int = 3200, overlap: int = 200) -> None:
        """Initialize the TextChunker with chunk size and overlap.

        Args:
            chunk_size: The size of each text chunk in characters.
            overlap: The number of overlapping characters between chunks.

        Raises:
            ValueError: If the overlap would keep chunks from advancing.
        """
        if overlap >= chunk_size // 2:
            msg = f"Overlap {overlap} must be smaller than half of {chunk_size}"
            raise ValueError(msg)
        self.chunk_size = chunk_size
        self.overlap = overlap

    def chunk_text(self, text: str, source: str = "document") -> list[DocumentChunk]:
        """Split text into overlapping chunks.

        Returns:
            A list of DocumentChunk objects representing the text chunks.
        """
        chunks = []
        start = 0
        chunk_index = 0

        while start < len(text):
            end = start + self.chunk_size
            chunk_text = text[start:end]

            # Avoid splitting words unless the break would leave a tiny chunk
            if end < len(text) and not chunk_text.endswith(" "):
                last_space = chunk_text.rfind(" ")
                if last_space > self.chunk_size // 2:
                    end = start + last_space
                    chunk_text = text[start:end]

            if chunk_text.strip():
                chunks.append(
                    DocumentChunk(
                        content=chunk_text.strip(),
                        metadata={
                            "source": source,
                            "chunk_index": chunk_index,
                            "chunk_type": "document",
                        },
                    )
                )
                chunk_index += 1

            start = end - self.overlap

            if start >= end or end >= len(text):
                break

        logger.info("Text split into %d chunks", len(chunks))
        return chunks


class SpreadsheetLoader:
    """Turns spreadsheet rows into searchable product records."""

    def __init__(self, min_row_tokens: int = MIN_ROW_TOKENS) -> None:
        self.min_row_tokens = min_row_tokens

    @staticmethod
    def row_to_text(row: dict[str, Any]) -> str:
        parts = [
            f"{key}: {str(value).strip()}"
            for key, value in row.items()
            if key and value is not None and str(value).strip()
        ]
        return clean_text(" | ".join(parts))

    def load_csv(self, file_path: Path) -> list[DocumentChunk]:
        """Load one CSV file as a sheet named after the file.

        Returns:
            List of chunks for the sheet.
        """
        with file_path.open(encoding="utf-8-sig", newline="") as file:
            rows = list(csv.DictReader(file))
        return self.chunk_sheet(file_path.stem, rows, source=file_path.stem)

    def load_xlsx(self, file_path: Path) -> list[DocumentChunk]:
        """Load every sheet of an Excel workbook.

        Returns:
            Chunks of all sheets, in workbook order.
        """
        try:
            sheets = pd.read_excel(
                file_path, sheet_name=None, dtype=str, keep_default_na=False
            )
        except Exception:
            logger.exception("Error loading workbook %s", file_path)
            raise

        logger.info("Found %d sheet(s): %s", len(sheets), ", ".join(sheets))
        chunks: list[DocumentChunk] = []
        for sheet_name, frame in sheets.items():
            rows = frame.to_dict(orient="records")
            chunks.extend(
                self.chunk_sheet(str(sheet_name), rows, source=file_path.name)
            )
        return chunks

    def chunk_sheet(
        self, sheet: str, rows: list[dict[str, Any]], *, source: str
    ) -> list[DocumentChunk]:
        """Build row chunks plus larger sentence-packed context chunks.

        Row numbers follow spreadsheet numbering: the header is row 1.

        Returns:
            List of chunks for one sheet.
        """
        row_texts: list[tuple[int, str]] = []
        for row_index, row in enumerate(rows):
            text = self.row_to_text(row)
            if text:
                row_texts.append((row_index, text))

        chunks = [
            DocumentChunk(
                content=text,
                metadata={
                    "source": source,
                    "sheet": sheet,
                    "row": row_index + 2,
                    "row_index": row_index,
                    "chunk_type": "row",
                },
            )
            for row_index, text in row_texts
            if estimate_tokens(text) >= self.min_row_tokens
        ]

        all_text = " | ".join(text for _, text in row_texts)
        chunks.extend(
            DocumentChunk(
                content=text,
                metadata={
                    "source": source,
                    "sheet": sheet,
                    "chunk_index": chunk_index,
                    "chunk_type": "context_chunk",
                },
            )
            for chunk_index, text in enumerate(chunk_sentences(all_text))
        )
        logger.info(
            "Sheet %s produced %d chunks from %d rows",
            sheet,
            len(chunks),
            len(row_texts),
        )
        return chunks


class IngestionPipeline:
    """Load -> Chunk -> Embed -> Store for knowledge-base files."""

    SUPPORTED_EXTENSIONS = (".csv", ".pdf", ".txt", ".xlsx")

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: VectorStore,
        chunker: TextChunker | None = None,
        spreadsheet_loader: SpreadsheetLoader | None = None,
    ) -> None:
        self.embedding_service = embedding_service
        self.vector_store = vector_store
        self.chunker = chunker or TextChunker(
            chunk_size=config.CHUNK_SIZE, overlap=config.CHUNK_OVERLAP
        )
        self.spreadsheet_loader = spreadsheet_loader or SpreadsheetLoader()

    def load_chunks(self, file_path: Path) -> list[DocumentChunk]:
        """Load and chunk one file based on its extension.

        Returns:
            Chunks without embeddings.

        Raises:
            ValueError: If the file type is not supported.
        """
        file_ext = file_path.suffix.lower()
        if file_ext == ".csv":
            return self.spreadsheet_loader.load_csv(file_path)
        if file_ext == ".xlsx":
            return self.spreadsheet_loader.load_xlsx(file_path)
        if file_ext == ".pdf":
            text = DocumentLoader.load_pdf(file_path)
        elif file_ext == ".txt":
            text = DocumentLoader.load_txt(file_path)
        else:
            msg = f"Unsupported file type: {file_ext}"
            raise ValueError(msg)
        return self.chunker.chunk_text(text, source=file_path.name)

    def ingest(self, file_paths: list[Path]) -> int:
        """Ingest files into the vector store and persist it.

        Returns:
            Number of chunks indexed.
        """
        chunks: list[DocumentChunk] = []
        for file_path in file_paths:
            logger.info("Loading knowledge-base file: %s", file_path)
            chunks.extend(self.load_chunks(Path(file_path)))

        if not chunks:
            logger.warning("No chunks produced; nothing to index")
            return 0

        embeddings = self.embedding_service.get_embeddings_batch(
            [chunk.content for chunk in chunks]
        )
        for chunk, embedding in zip(chunks, embeddings, strict=True):
            chunk.embedding = embedding

        self.vector_store.add_chunks(chunks)
        self.vector_store.save()
        logger.info("Indexed %d chunks", len(chunks))
        return len(chunks)
