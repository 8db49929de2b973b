"""
Normalized quiz documents and their conversion to and from the flow graph.
"""

from .models import QuestionsDocument, StringsDocument, ResultsDocument, PaginatedCollection
from .importer import parse_documents
from .exporter import ExportedDocuments, export_documents

__all__ = [
    'QuestionsDocument',
    'StringsDocument',
    'ResultsDocument',
    'PaginatedCollection',
    'parse_documents',
    'ExportedDocuments',
    'export_documents'
]
