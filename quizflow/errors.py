"""
Exception hierarchy for import, export, layout and editing operations.
"""
from typing import List


class QuizFlowError(Exception):
    """Base class for every error raised by quizflow."""


class DocumentFetchError(QuizFlowError):
    """A source document could not be retrieved or decoded."""

    def __init__(self, file_name: str, reason: str):
        self.file_name = file_name
        self.reason = reason
        super().__init__(f"Error fetching {file_name}: {reason}")


class SchemaDocumentError(QuizFlowError):
    """A document does not have the paginated-collection shape."""


class SchemaIntegrityError(QuizFlowError):
    """Documents reference ids that their paired document does not define."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        summary = "; ".join(self.problems[:5])
        if len(self.problems) > 5:
            summary += f"; ... ({len(self.problems) - 5} more)"
        super().__init__(f"{len(self.problems)} integrity problem(s): {summary}")


class GraphIntegrityError(QuizFlowError):
    """A graph mutation would break referential integrity or id uniqueness."""


class LayoutError(QuizFlowError):
    """The layout engine was asked for something it cannot do."""


class GraphFileError(QuizFlowError):
    """A saved graph file is not valid JSON or not a graph."""
