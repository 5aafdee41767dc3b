from app.api.routes.inspections import router as inspections_router
from app.api.routes.inspection_templates import router as inspection_templates_router

__all__ = [
    "inspections_router",
    "inspection_templates_router",
]
