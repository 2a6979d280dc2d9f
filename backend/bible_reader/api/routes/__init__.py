from bible_reader.api.routes.books import router as books_router
from bible_reader.api.routes.versions import router as versions_router
from bible_reader.api.routes.highlights import router as highlights_router
from bible_reader.api.routes.notes import router as notes_router
from bible_reader.api.routes.reader import router as reader_router

# 对外导出路由
__all__ = ["books_router", "versions_router", "highlights_router", "notes_router", "reader_router"]
