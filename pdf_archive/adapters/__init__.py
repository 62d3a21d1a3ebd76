from pdf_archive.adapters.blob_store import BlobStore
from pdf_archive.adapters.pdf_inspector import PdfInspector

__all__ = ["BlobStore", "PdfInspector"]
