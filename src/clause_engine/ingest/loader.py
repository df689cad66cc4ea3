"""Load text documents from disk for the decision pipeline."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from clause_engine.errors import InputValidationError
from clause_engine.types import Document

logger = logging.getLogger(__name__)


class Parser(ABC):
    """Base parser interface used by the loader."""

    extensions: tuple[str, ...] = ()

    @abstractmethod
    def parse(self, path: Path, *, name: str | None = None) -> Document:
        """Read a file into a linearized `Document`."""


class TextParser(Parser):
    """Parser for plain text documents."""

    extensions = (".txt", ".log")

    def parse(self, path: Path, *, name: str | None = None) -> Document:
        return Document(name=name or path.name, text=path.read_text(encoding="utf-8"))


class MarkdownParser(Parser):
    """Parser for markdown documents; markup is left in place."""

    extensions = (".md", ".markdown")

    def parse(self, path: Path, *, name: str | None = None) -> Document:
        return Document(name=name or path.name, text=path.read_text(encoding="utf-8"))


class ParserRegistry:
    """Maps file extension to parser implementation."""

    def __init__(self, parsers: list[Parser] | None = None) -> None:
        self._parsers: dict[str, Parser] = {}
        for parser in parsers or [TextParser(), MarkdownParser()]:
            self.register(parser)

    def register(self, parser: Parser) -> None:
        for extension in parser.extensions:
            self._parsers[extension.lower()] = parser

    def parse_path(self, path: str | Path, *, name: str | None = None) -> Document:
        file_path = Path(path)
        parser = self._parsers.get(file_path.suffix.lower())
        if parser is None:
            raise InputValidationError(
                f"No parser registered for extension: {file_path.suffix}",
                user_message=f"Unsupported document type: {file_path.name}",
            )
        try:
            return parser.parse(file_path, name=name)
        except UnicodeDecodeError as exc:
            raise InputValidationError(
                f"{file_path} is not valid UTF-8: {exc}",
                user_message=f"Document is not UTF-8 text: {file_path.name}",
            ) from exc


class DocumentLoader:
    """Parses many files concurrently, returning documents in input order."""

    def __init__(self, registry: ParserRegistry | None = None, *, max_workers: int = 4) -> None:
        self.registry = registry or ParserRegistry()
        self.max_workers = max_workers

    def load(self, path: str | Path) -> Document:
        return self.registry.parse_path(path)

    def load_many(self, paths: list[str | Path]) -> list[Document]:
        if not paths:
            return []
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            documents = list(pool.map(self.load, paths))
        logger.info("Loaded %d documents", len(documents))
        return documents
