from pdf_archive.api.routes_files import files_router
from pdf_archive.api.routes_health import health_router

__all__ = ["files_router", "health_router"]
