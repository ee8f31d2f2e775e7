"""
Block parser utilities for email/poster template editing.

Parses HTML with block markers into editable components and rebuilds the
document after edits. Markers format:

    <!-- BLOCK:type -->...<!-- /BLOCK:type -->

The opening marker may carry extra attributes (<!-- BLOCK:hero variant="dark" -->),
which are kept and written back on reconstruction. All functions are pure:
they take a ParsedEmail snapshot and return new HTML or a new snapshot.
"""
import re
from typing import List, Optional

import structlog

from mailblocks.models.blocks import BlockUpdate, EmailBlock, ParsedEmail
from mailblocks.services.block_updater import apply_block_updates
from mailblocks.services.element_extractor import extract_editable_elements

logger = structlog.get_logger(__name__)

BLOCK_PATTERN = re.compile(r"<!-- BLOCK:(\w+)(?:\s+([^>]*?))? -->(.*?)<!-- /BLOCK:\1 -->", re.DOTALL)
OPEN_MARKER_PATTERN = re.compile(r"<!-- BLOCK:\w+(?:\s+[^>]*?)? -->")

BLOCK_LABELS = {
    "header": "Header",
    "hero": "Hero Section",
    "content": "Content",
    "cta": "Call to Action",
    "features": "Features",
    "testimonial": "Testimonial",
    "footer": "Footer",
    "custom": "Custom Block",
}


def format_block_label(block_type: str) -> str:
    """Format block type into human-readable label"""
    if block_type in BLOCK_LABELS:
        return BLOCK_LABELS[block_type]
    return block_type[:1].upper() + block_type[1:]


def make_block_id(block_type: str, ordinal: int) -> str:
    return f"{block_type}-{ordinal}"


def open_marker(block: EmailBlock) -> str:
    if block.attributes:
        return f"<!-- BLOCK:{block.type} {block.attributes} -->"
    return f"<!-- BLOCK:{block.type} -->"


def close_marker(block: EmailBlock) -> str:
    return f"<!-- /BLOCK:{block.type} -->"


def has_block_markers(html: str) -> bool:
    """Check if HTML has block markers"""
    return bool(html) and OPEN_MARKER_PATTERN.search(html) is not None


def parse_email_blocks(html: str) -> ParsedEmail:
    """
    Parse email HTML into blocks based on comment markers.

    A block closes at the first close marker of the same type. Unpaired or
    mismatched markers produce no block and stay in the surrounding HTML.
    Without any block, preBlockHtml is the whole input.
    """
    blocks: List[EmailBlock] = []
    pre_block_html = html
    last_end_index = len(html)

    for match in BLOCK_PATTERN.finditer(html):
        block_type, attributes, content = match.groups()

        # Capture pre-block HTML (before first block)
        if not blocks:
            pre_block_html = html[:match.start()]

        block_html = content.strip()
        blocks.append(EmailBlock(
            id=make_block_id(block_type, len(blocks)),
            type=block_type,
            label=format_block_label(block_type),
            html=block_html,
            startIndex=match.start(),
            endIndex=match.end(),
            attributes=attributes.strip() if attributes else None,
            editable=extract_editable_elements(block_html),
        ))
        last_end_index = match.end()

    # Capture post-block HTML (after last block)
    post_block_html = html[last_end_index:]

    logger.debug("Parsed email blocks", block_count=len(blocks), html_length=len(html))

    return ParsedEmail(
        blocks=blocks,
        rawHtml=html,
        preBlockHtml=pre_block_html,
        postBlockHtml=post_block_html,
    )


def serialize_block(block: EmailBlock) -> str:
    return f"{open_marker(block)}\n{block.html}\n{close_marker(block)}"


def reconstruct_html(parsed: ParsedEmail, updated_blocks: Optional[List[EmailBlock]] = None) -> str:
    """Reconstruct full HTML from parsed email with updated blocks"""
    blocks = parsed.blocks if updated_blocks is None else updated_blocks
    return parsed.preBlockHtml + "".join(serialize_block(block) for block in blocks) + parsed.postBlockHtml


def get_block_by_id(parsed: ParsedEmail, block_id: str) -> Optional[EmailBlock]:
    """Get block by ID"""
    for block in parsed.blocks:
        if block.id == block_id:
            return block
    return None


def with_block_html(block: EmailBlock, new_html: str) -> EmailBlock:
    """Copy of block carrying new HTML and a fresh extraction snapshot."""
    return block.model_copy(update={
        "html": new_html,
        "editable": extract_editable_elements(new_html),
    })


def _replace_in_parsed(parsed: ParsedEmail, block_id: str, new_block: EmailBlock) -> ParsedEmail:
    blocks = [new_block if block.id == block_id else block for block in parsed.blocks]
    snapshot = parsed.model_copy(update={"blocks": blocks})
    return snapshot.model_copy(update={"rawHtml": reconstruct_html(snapshot)})


def apply_update_to_parsed(parsed: ParsedEmail, block_id: str, updates: BlockUpdate) -> ParsedEmail:
    """Apply a BlockUpdate and return the new snapshot (same block ids)."""
    block = get_block_by_id(parsed, block_id)
    if block is None:
        logger.info("Block not found for update", block_id=block_id)
        return parsed

    return _replace_in_parsed(parsed, block_id, with_block_html(block, apply_block_updates(block, updates)))


def replace_block_in_parsed(parsed: ParsedEmail, block_id: str, new_html: str) -> ParsedEmail:
    """Replace a block's HTML and return the new snapshot (same block ids)."""
    block = get_block_by_id(parsed, block_id)
    if block is None:
        logger.info("Block not found for replacement", block_id=block_id)
        return parsed

    return _replace_in_parsed(parsed, block_id, with_block_html(block, new_html))


def update_block(parsed: ParsedEmail, block_id: str, updates: BlockUpdate) -> str:
    """Update a single block in parsed email and return new HTML"""
    return reconstruct_html(apply_update_to_parsed(parsed, block_id, updates))


def replace_block_html(parsed: ParsedEmail, block_id: str, new_html: str) -> str:
    """Replace a block's HTML entirely (used for AI edits)"""
    return reconstruct_html(replace_block_in_parsed(parsed, block_id, new_html))


def delete_block(parsed: ParsedEmail, block_id: str) -> str:
    """Delete a block from parsed email and return new HTML"""
    remaining = [block for block in parsed.blocks if block.id != block_id]
    if len(remaining) == len(parsed.blocks):
        logger.info("Block not found for deletion", block_id=block_id)
    return reconstruct_html(parsed, remaining)
