"""Ingestion package interfaces."""

from .facade import BatchIngestion, IngestionFacade, UrlIngestion, split_text_to_documents

__all__ = ["BatchIngestion", "IngestionFacade", "UrlIngestion", "split_text_to_documents"]
