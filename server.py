#!/usr/bin/env python3
"""
server.py - Template rendering server

FastAPI-based server that renders templates from a template directory
against variables posted as a JSON object.

Templates are compiled once and served from an in-memory cache keyed by
name and content checksum.
"""

import logging
import os
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

from quill import (
    MemoryTemplateCache,
    TemplateLoader,
    TemplateNotFound,
    TemplateSyntaxError,
    load_template,
)

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(title="Quill Template API", version="1.0.0")

# Initialize components
template_loader = TemplateLoader(os.environ.get("QUILL_TEMPLATE_DIR", "templates"))
template_cache = MemoryTemplateCache()


@app.post("/render/{template_path:path}", response_class=PlainTextResponse)
async def render_template(
    template_path: str,
    variables: Optional[Dict[str, Any]] = Body(None),
):
    """
    Render a template.

    The request body is a JSON object of variables, e.g.
    {"title": "Orders", "orders": [{"id": 1}, {"id": 2}]}

    Args:
        template_path: Template path relative to the template directory
        variables: Variable bindings applied before rendering

    Returns:
        Rendered text
    """
    try:
        template = load_template(template_path, template_loader, template_cache)
    except TemplateNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TemplateSyntaxError as e:
        raise HTTPException(status_code=422, detail=str(e))

    template.update(variables or {})
    return template.render()


@app.get("/templates")
async def list_templates():
    """List the templates available for rendering."""
    return {"templates": template_loader.list_templates()}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0", "cached_templates": len(template_cache)}


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8000)
