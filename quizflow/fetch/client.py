import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
import aiohttp

from ..config import settings
from ..errors import DocumentFetchError
from ..utils.logger import app_logger


@dataclass
class SourceDocuments:
    """The three raw documents an import needs."""
    questions: Dict[str, Any]
    strings: Dict[str, Any]
    results: Dict[str, Any]


def _join(base_url: str, file_name: str) -> str:
    # plain prefix, so a base such as "./quiz/v2-" names "v2-questions.json"
    return f"{base_url}{file_name}"


class DocumentFetcher:
    """Retrieves the quiz documents over HTTP relative to a base URL."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = settings.base_url if base_url is None else base_url
        self.timeout = settings.fetch_timeout if timeout is None else timeout
        self.session: Optional[aiohttp.ClientSession] = None
        self.logger = app_logger.bind(component="fetcher")

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers={
                'Accept': 'application/json',
                'User-Agent': 'quizflow-editor'
            }
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.session = None

    async def fetch_file(self, file_name: str) -> Dict[str, Any]:
        """Fetch and decode one JSON document."""
        if self.session is None:
            raise RuntimeError("DocumentFetcher must be used as an async context manager")

        url = _join(self.base_url, file_name)
        self.logger.debug(f"Fetching {url}")
        try:
            async with self.session.get(url) as response:
                if response.status >= 400:
                    raise DocumentFetchError(file_name, f"{response.status} {response.reason}")
                body = await response.text()
        except aiohttp.ClientError as e:
            raise DocumentFetchError(file_name, str(e)) from e
        except asyncio.TimeoutError as e:
            raise DocumentFetchError(file_name, f"timed out after {self.timeout}s") from e

        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise DocumentFetchError(file_name, f"invalid JSON: {e}") from e

    async def fetch_all(self) -> SourceDocuments:
        """Fetch questions, strings and results one after the other."""
        questions = await self.fetch_file(settings.questions_file)
        strings = await self.fetch_file(settings.strings_file)
        results = await self.fetch_file(settings.results_file)
        self.logger.info(f"Fetched quiz documents from {self.base_url or '<relative>'}")
        return SourceDocuments(questions=questions, strings=strings, results=results)


class LocalDocumentSource:
    """Reads the quiz documents from a directory on disk."""

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.logger = app_logger.bind(component="local_source")

    def read_file(self, file_name: str) -> Dict[str, Any]:
        path = self.directory / file_name
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except FileNotFoundError as e:
            raise DocumentFetchError(file_name, f"not found in {self.directory}") from e
        except json.JSONDecodeError as e:
            raise DocumentFetchError(file_name, f"invalid JSON: {e}") from e

    def read_all(self) -> SourceDocuments:
        documents = SourceDocuments(
            questions=self.read_file(settings.questions_file),
            strings=self.read_file(settings.strings_file),
            results=self.read_file(settings.results_file),
        )
        self.logger.info(f"Loaded quiz documents from {self.directory}")
        return documents


async def fetch_documents(base_url: str) -> SourceDocuments:
    """Fetch all three documents from ``base_url`` (http(s) URL or directory)."""
    if base_url.startswith(("http://", "https://")):
        async with DocumentFetcher(base_url) as fetcher:
            return await fetcher.fetch_all()
    return LocalDocumentSource(base_url).read_all()
