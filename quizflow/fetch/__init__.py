"""
Retrieval of the source documents.
"""

from .client import DocumentFetcher, LocalDocumentSource, SourceDocuments, fetch_documents

__all__ = [
    'DocumentFetcher',
    'LocalDocumentSource',
    'SourceDocuments',
    'fetch_documents'
]
