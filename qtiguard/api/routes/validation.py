"""POST /validate: structural check of a QTI item document or zip package.

The raw request body is the document: zip bytes or XML text.
"""
from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from qtiguard.validation.validator import validate_document

router = APIRouter(tags=["validation"])


@router.post("/validate", summary="Validate a QTI item or package")
async def validate_upload(request: Request):
    data = await request.body()
    if not data:
        raise HTTPException(status_code=400, detail="Empty request body")
    return validate_document(data).model_dump()
