"""
Editable element extraction for block HTML.

Finds images, text nodes, links and inline colors in a fragment of
LLM-generated HTML with tolerant pattern matching. Nothing here mutates
its input or raises on malformed markup: tags that don't match are skipped.
"""
import re
from typing import List, Optional

from mailblocks.models.blocks import (
    EditableColor,
    EditableElements,
    EditableImage,
    EditableLink,
    EditableText,
)

TEXT_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6", "p", "span", "td", "th", "li", "a")

IMG_TAG_PATTERN = re.compile(r"<img\b[^>]*>", re.IGNORECASE)
TEXT_TAG_PATTERN = re.compile(r"<(h[1-6]|p|span|td|th|li|a)\b([^>]*)>([^<]*)</\1>", re.IGNORECASE)
LINK_PATTERN = re.compile(r"<a\b([^>]*)>([^<]*)</a>", re.IGNORECASE)
COLOR_PATTERN = re.compile(
    r"(?<![\w-])(background-color|border-color|color)\s*:\s*(#[a-fA-F0-9]{3,6}|rgba?\([^)]+\))",
    re.IGNORECASE,
)

# A single Handlebars expression and nothing else: {{name}} or {{{url}}}
PLACEHOLDER_ONLY_PATTERN = re.compile(r"^\{\{\{?[^{}]+\}?\}\}$")


def _attribute_pattern(name: str, value: str) -> str:
    # (?<![\w-]) keeps data-src / data-href from matching src / href
    return rf"(?<![\w-]){name}\s*=\s*{value}"


SRC_ATTR = re.compile(_attribute_pattern("src", r"[\"']([^\"']+)[\"']"), re.IGNORECASE)
ALT_ATTR = re.compile(_attribute_pattern("alt", r"[\"']([^\"']*)[\"']"), re.IGNORECASE)
WIDTH_ATTR = re.compile(_attribute_pattern("width", r"[\"']?(\d+)"), re.IGNORECASE)
HEIGHT_ATTR = re.compile(_attribute_pattern("height", r"[\"']?(\d+)"), re.IGNORECASE)
HREF_ATTR = re.compile(_attribute_pattern("href", r"[\"']([^\"']+)[\"']"), re.IGNORECASE)


def get_attribute(tag: str, pattern: re.Pattern) -> Optional[str]:
    """Return the first captured attribute value in a tag, or None."""
    match = pattern.search(tag)
    return match.group(1) if match else None


def is_placeholder_only(content: str) -> bool:
    """True when the text is exactly one templating placeholder."""
    return bool(PLACEHOLDER_ONLY_PATTERN.match(content))


def extract_images(html: str) -> List[EditableImage]:
    """Extract all images that carry a src attribute."""
    images = []

    for match in IMG_TAG_PATTERN.finditer(html):
        img_tag = match.group(0)

        src = get_attribute(img_tag, SRC_ATTR)
        if not src:
            continue

        width = get_attribute(img_tag, WIDTH_ATTR)
        height = get_attribute(img_tag, HEIGHT_ATTR)

        images.append(EditableImage(
            src=src,
            alt=get_attribute(img_tag, ALT_ATTR) or "",
            width=int(width) if width else None,
            height=int(height) if height else None,
            index=len(images),
        ))

    return images


def extract_text_elements(html: str) -> List[EditableText]:
    """Extract text-bearing tags (headings, paragraphs, cells, ...) without nested markup."""
    text_elements = []

    for match in TEXT_TAG_PATTERN.finditer(html):
        tag, _attributes, content = match.groups()
        trimmed = content.strip()

        # Skip empty content and Handlebars-only content
        if not trimmed or is_placeholder_only(trimmed):
            continue

        text_elements.append(EditableText(
            content=trimmed,
            tag=tag.lower(),
            index=len(text_elements),
        ))

    return text_elements


def extract_links(html: str) -> List[EditableLink]:
    """Extract anchors with a non-empty href."""
    links = []

    for match in LINK_PATTERN.finditer(html):
        attributes, text = match.groups()
        href = get_attribute(attributes, HREF_ATTR)
        if not href:
            continue

        links.append(EditableLink(
            href=href,
            text=text.strip(),
            index=len(links),
        ))

    return links


def extract_colors(html: str) -> List[EditableColor]:
    """Extract inline colors, first occurrence of each (property, value) pair only."""
    colors = []
    seen = set()

    for match in COLOR_PATTERN.finditer(html):
        prop, value = match.groups()
        prop = prop.lower()
        key = (prop, value)
        if key in seen:
            continue

        seen.add(key)
        colors.append(EditableColor(property=prop, value=value, selector=prop))

    return colors


def extract_editable_elements(html: str) -> EditableElements:
    """Extract every editable element category from block HTML."""
    return EditableElements(
        images=extract_images(html),
        text=extract_text_elements(html),
        links=extract_links(html),
        colors=extract_colors(html),
    )
