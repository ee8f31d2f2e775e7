"""
Apply sparse edits (BlockUpdate) to a single block's HTML.

Every edit is anchored on the original value recorded in the block's
extraction snapshot and rewritten in place, so the rest of the block stays
textually unchanged. An anchor that is no longer present is a no-op.
"""
import re
from typing import Callable, Iterable, List, Optional, Set

import structlog

from mailblocks.models.blocks import BlockUpdate, EmailBlock, LinkUpdate

logger = structlog.get_logger(__name__)

# Hex or rgb()/rgba() value; named colors and free text are left alone
COLOR_VALUE = r"(?:#[a-fA-F0-9]{3,8}(?![\w-])|rgba?\([^)]*\))"


def _replace_first(pattern: str, html: str, replacement: Callable[[re.Match], str], what: str) -> str:
    """Replace the first match of pattern; replacement values are inserted literally."""
    new_html, count = re.subn(pattern, replacement, html, count=1, flags=re.IGNORECASE)
    if count == 0:
        logger.debug("Update anchor not found", target=what)
    return new_html


def _descending(indices: Iterable[int]) -> List[int]:
    return sorted(set(indices), reverse=True)


def _get(items: list, index: int):
    if 0 <= index < len(items):
        return items[index]
    return None


def _quoted(value: str) -> str:
    return r"[\"']" + re.escape(value) + r"[\"']"


def _attr(name: str, value: str) -> str:
    return rf"(?<![\w-]){name}\s*=\s*{_quoted(value)}"


def delete_elements(block: EmailBlock, update: BlockUpdate, html: str) -> str:
    """Remove deleted images, text nodes and links, highest index first."""
    editable = block.editable

    for idx in _descending(update.deleteImages):
        image = _get(editable.images, idx)
        if image:
            html = _replace_first(
                rf"<img\b[^>]*{_attr('src', image.src)}[^>]*>",
                html,
                lambda m: "",
                f"image[{idx}]",
            )

    for idx in _descending(update.deleteText):
        text_el = _get(editable.text, idx)
        if text_el:
            tag = re.escape(text_el.tag)
            html = _replace_first(
                rf"<{tag}\b[^>]*>\s*{re.escape(text_el.content)}\s*</{tag}>",
                html,
                lambda m: "",
                f"text[{idx}]",
            )

    for idx in _descending(update.deleteLinks):
        link = _get(editable.links, idx)
        if link:
            html = _replace_first(
                rf"<a\b[^>]*{_attr('href', link.href)}[^>]*>\s*{re.escape(link.text)}\s*</a>",
                html,
                lambda m: "",
                f"link[{idx}]",
            )

    return html


def update_images(block: EmailBlock, update: BlockUpdate, html: str, deleted: Set[int]) -> str:
    for img_update in update.images:
        if img_update.index in deleted:
            continue
        image = _get(block.editable.images, img_update.index)
        if not image:
            continue

        html = _replace_first(
            rf"<img\b[^>]*{_attr('src', image.src)}[^>]*>",
            html,
            lambda m, image=image, img_update=img_update: _rewrite_img_tag(m.group(0), image.src, image.alt, img_update.src, img_update.alt),
            f"image[{img_update.index}]",
        )

    return html


def _rewrite_img_tag(tag: str, old_src: str, old_alt: str, new_src: str, new_alt: Optional[str]) -> str:
    tag = re.sub(_attr("src", old_src), lambda m: f'src="{new_src}"', tag, count=1, flags=re.IGNORECASE)
    if new_alt is None:
        return tag

    alt_pattern = rf"(?<![\w-])alt\s*=\s*[\"']{re.escape(old_alt)}[\"']"
    tag, count = re.subn(alt_pattern, lambda m: f'alt="{new_alt}"', tag, count=1, flags=re.IGNORECASE)
    if count == 0 and not re.search(r"(?<![\w-])alt\s*=", tag, re.IGNORECASE):
        # Image had no alt attribute at all
        tag = re.sub(r"^<img\b", lambda m: f'<img alt="{new_alt}"', tag, count=1, flags=re.IGNORECASE)
    return tag


def update_text(block: EmailBlock, update: BlockUpdate, html: str, deleted: Set[int]) -> str:
    for text_update in update.text:
        if text_update.index in deleted:
            continue
        text_el = _get(block.editable.text, text_update.index)
        if not text_el:
            continue

        tag = re.escape(text_el.tag)
        new_content = text_update.content
        # Keep the opening tag (with its attributes) and surrounding whitespace
        html = _replace_first(
            rf"(<{tag}\b[^>]*>\s*){re.escape(text_el.content)}(\s*</{tag}>)",
            html,
            lambda m: m.group(1) + new_content + m.group(2),
            f"text[{text_update.index}]",
        )

    return html


def update_links(block: EmailBlock, update: BlockUpdate, html: str, deleted: Set[int]) -> str:
    for link_update in update.links:
        if link_update.index in deleted:
            continue
        link = _get(block.editable.links, link_update.index)
        if not link:
            continue

        # Rewrite inside the anchor that carries both the href and the text
        anchor = rf"<a\b[^>]*{_attr('href', link.href)}[^>]*>\s*{re.escape(link.text)}\s*</a>"
        html, count = re.subn(
            anchor,
            lambda m, link=link, link_update=link_update: _rewrite_link_tag(m.group(0), link.href, link.text, link_update),
            html,
            count=1,
            flags=re.IGNORECASE,
        )
        if count:
            continue

        if link_update.href:
            new_href = link_update.href
            html = _replace_first(
                _attr("href", link.href),
                html,
                lambda m: f'href="{new_href}"',
                f"link[{link_update.index}].href",
            )

        if link_update.text:
            new_text = link_update.text
            html = _replace_first(
                rf"(<a\b[^>]*>\s*){re.escape(link.text)}(\s*</a>)",
                html,
                lambda m: m.group(1) + new_text + m.group(2),
                f"link[{link_update.index}].text",
            )

    return html


def _rewrite_link_tag(tag: str, old_href: str, old_text: str, link_update: LinkUpdate) -> str:
    if link_update.href:
        new_href = link_update.href
        tag = re.sub(_attr("href", old_href), lambda m: f'href="{new_href}"', tag, count=1, flags=re.IGNORECASE)
    if link_update.text:
        new_text = link_update.text
        tag = re.sub(
            rf"(>\s*){re.escape(old_text)}(\s*</a>)$",
            lambda m: m.group(1) + new_text + m.group(2),
            tag,
            count=1,
            flags=re.IGNORECASE,
        )
    return tag


def update_colors(update: BlockUpdate, html: str) -> str:
    """Replace every color-valued declaration of each property in the block."""
    for color_update in update.colors:
        prop = color_update.property.strip().lower()
        new_value = color_update.value
        pattern = rf"(?<![\w-]){re.escape(prop)}\s*:\s*{COLOR_VALUE}"
        html, count = re.subn(pattern, lambda m: f"{prop}: {new_value}", html, flags=re.IGNORECASE)
        if count == 0:
            logger.debug("Update anchor not found", target=f"color[{prop}]")

    return html


def apply_block_updates(block: EmailBlock, updates: Optional[BlockUpdate]) -> str:
    """
    Apply a BlockUpdate to a block and return the new block HTML.

    Deletions run first, in descending index order per category, then image,
    text, link and color updates. Indices refer to block.editable; callers
    must re-extract before issuing another update against the result.
    """
    html = block.html
    if updates is None or updates.is_empty:
        return html

    html = delete_elements(block, updates, html)
    html = update_images(block, updates, html, set(updates.deleteImages))
    html = update_text(block, updates, html, set(updates.deleteText))
    html = update_links(block, updates, html, set(updates.deleteLinks))
    html = update_colors(updates, html)

    return html
