"""
Block editing API router.

Every request carries the current document HTML; the server keeps no
editing state, so ordering concurrent edits of one document is up to the
client.
"""
from typing import List, Literal, Optional

import structlog
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from mailblocks.models.blocks import (
    BlockUpdate,
    ChatContext,
    EmailBlock,
    EmailValidation,
    ParsedEmail,
)
from mailblocks.services.block_ai_editor import BlockAIEditor, BlockEditError, ai_edit_block
from mailblocks.services.block_parser import (
    delete_block,
    get_block_by_id,
    parse_email_blocks,
    replace_block_html,
    update_block,
)
from mailblocks.services.email_validator import validate_email

logger = structlog.get_logger(__name__)

router = APIRouter()


# ============================================================================
# PYDANTIC MODELS
# ============================================================================

class ParseRequest(BaseModel):
    html: str


class ParseResponse(BaseModel):
    hasBlocks: bool
    parsed: ParsedEmail


class BlockRequest(BaseModel):
    html: str
    blockId: str


class UpdateBlockRequest(BlockRequest):
    updates: BlockUpdate


class ReplaceBlockRequest(BlockRequest):
    newHtml: str


class AIEditBlockRequest(BlockRequest):
    instruction: str
    context: Optional[ChatContext] = None
    provider: Optional[Literal["anthropic", "openrouter"]] = None
    apiKey: Optional[str] = None


class BlockEditResponse(BaseModel):
    success: bool = True
    html: str
    blocks: List[EmailBlock]
    validation: EmailValidation
    summary: Optional[str] = None


class ValidateRequest(BaseModel):
    html: str


# ============================================================================
# HELPERS
# ============================================================================

def _load_block_document(html: str, block_id: str) -> ParsedEmail:
    """Parse the document and make sure the target block exists."""
    parsed = parse_email_blocks(html)
    if not parsed.has_blocks:
        raise HTTPException(status_code=422, detail="Document has no block markers")
    if get_block_by_id(parsed, block_id) is None:
        raise HTTPException(status_code=404, detail=f"Block not found: {block_id}")
    return parsed


def _edit_response(html: str, summary: Optional[str] = None) -> BlockEditResponse:
    return BlockEditResponse(
        html=html,
        blocks=parse_email_blocks(html).blocks,
        validation=validate_email(html),
        summary=summary,
    )


# ============================================================================
# API ENDPOINTS
# ============================================================================

@router.post("/blocks/parse", response_model=ParseResponse)
async def parse_blocks(request: ParseRequest):
    """Split a document into editable blocks."""
    parsed = parse_email_blocks(request.html)
    logger.info("Parsed document", block_count=len(parsed.blocks))
    return ParseResponse(hasBlocks=parsed.has_blocks, parsed=parsed)


@router.post("/blocks/update", response_model=BlockEditResponse)
async def update_block_endpoint(request: UpdateBlockRequest):
    """Apply index-based edits and deletions to one block."""
    parsed = _load_block_document(request.html, request.blockId)
    new_html = update_block(parsed, request.blockId, request.updates)
    logger.info("Updated block", block_id=request.blockId, changed=new_html != request.html)
    return _edit_response(new_html)


@router.post("/blocks/replace", response_model=BlockEditResponse)
async def replace_block_endpoint(request: ReplaceBlockRequest):
    """Replace the whole HTML of one block."""
    parsed = _load_block_document(request.html, request.blockId)
    new_html = replace_block_html(parsed, request.blockId, request.newHtml)
    logger.info("Replaced block", block_id=request.blockId)
    return _edit_response(new_html)


@router.post("/blocks/delete", response_model=BlockEditResponse)
async def delete_block_endpoint(request: BlockRequest):
    """Remove one block and its markers from the document."""
    parsed = _load_block_document(request.html, request.blockId)
    new_html = delete_block(parsed, request.blockId)
    logger.info("Deleted block", block_id=request.blockId)
    return _edit_response(new_html)


@router.post("/blocks/ai-edit", response_model=BlockEditResponse)
async def ai_edit_block_endpoint(request: AIEditBlockRequest):
    """Rewrite one block with the AI editor from a free-form instruction."""
    if not request.instruction.strip():
        raise HTTPException(status_code=400, detail="Instruction is required")

    parsed = _load_block_document(request.html, request.blockId)

    try:
        editor = BlockAIEditor(provider=request.provider, api_key=request.apiKey)
        new_html = await ai_edit_block(parsed, request.blockId, request.instruction, request.context, editor=editor)
    except BlockEditError as e:
        logger.error("AI block edit failed", block_id=request.blockId, error=str(e))
        raise HTTPException(status_code=e.status_code or 502, detail=str(e))

    return _edit_response(new_html, summary=editor.last_explanation)


@router.post("/blocks/validate", response_model=EmailValidation)
async def validate_document(request: ValidateRequest):
    """Check a finished document against email-client constraints."""
    return validate_email(request.html)
