"""
Email HTML validation - checks a finished document for patterns that break
email clients and for size limits.
"""
import re
from typing import Optional

import structlog

from mailblocks.config import settings
from mailblocks.models.blocks import EmailValidation

logger = structlog.get_logger(__name__)

ICON_CELL_PATTERN = re.compile(r"<td[^>]*width=[\"']?(4[8-9]|5[0-9]|6[0-4])[\"']?[^>]*>", re.IGNORECASE)
EMOJI_PATTERN = re.compile(
    "[\U0001F300-\U0001F9FF]|[\u2600-\u26FF]|[\u2700-\u27BF]|[\U0001F600-\U0001F64F]|[\U0001F680-\U0001F6FF]"
)
DOUBLE_BRACE_URL_PATTERN = re.compile(r"(?<!\{)\{\{(unsubscribe|cta|track|action|redirect)\w*Url\}\}(?!\})", re.IGNORECASE)


def validate_email(html: str, max_size_kb: Optional[int] = None) -> EmailValidation:
    """Validate email HTML; errors make the email invalid, warnings don't."""
    max_size_kb = max_size_kb or settings.max_email_size_kb
    warnings = []
    errors = []
    total_size = len(html.encode("utf-8"))

    if total_size > max_size_kb * 1024:
        warnings.append(f"Size ({round(total_size / 1024)}KB) exceeds Gmail limit ({max_size_kb}KB)")

    # CRITICAL ERRORS - These break email rendering
    if re.search(r"display\s*:\s*flex", html, re.IGNORECASE):
        errors.append("CRITICAL: display:flex detected - breaks in email clients. Use table-based layout.")

    if re.search(r"display\s*:\s*grid", html, re.IGNORECASE):
        errors.append("CRITICAL: display:grid detected - breaks in email clients. Use table-based layout.")

    if re.search(r"position\s*:\s*(absolute|relative|fixed)", html, re.IGNORECASE):
        errors.append("CRITICAL: CSS position detected - not supported in email clients.")

    if re.search(r"float\s*:\s*(left|right)", html, re.IGNORECASE):
        errors.append("CRITICAL: CSS float detected - breaks in Outlook.")

    if not re.search(r"<table", html, re.IGNORECASE):
        errors.append("No table layout detected - email will break in Outlook")

    # Icon cells (width 48-64) should be top-aligned
    for cell in ICON_CELL_PATTERN.finditer(html):
        if not re.search(r"valign", cell.group(0), re.IGNORECASE):
            warnings.append('Icon cell missing valign="top" - may cause misalignment')

    if re.search(r"<div[^>]*style=[\"'][^\"']*display\s*:\s*flex", html, re.IGNORECASE):
        errors.append("CRITICAL: div with display:flex found - use nested table with background-color instead")

    emojis = EMOJI_PATTERN.findall(html)
    if emojis:
        warnings.append(f"Emojis detected ({''.join(emojis[:3])}...) - use hosted PNG icons instead for better deliverability")

    # Responsiveness
    if "email-container" not in html:
        warnings.append('Missing class="email-container" - email may not be responsive')

    if not re.search(r"@media", html, re.IGNORECASE):
        warnings.append("No media queries found - email may not be mobile responsive")

    if DOUBLE_BRACE_URL_PATTERN.search(html):
        warnings.append("URL variables should use triple braces {{{url}}} in SuprSend")

    # Check images have required attributes
    images = re.findall(r"<img[^>]*>", html, re.IGNORECASE)
    for i, img in enumerate(images):
        if not re.search(r"alt=", img, re.IGNORECASE):
            warnings.append(f"Image {i + 1} missing alt attribute")
        if not re.search(r"style=[\"'][^\"']*display\s*:\s*block", img, re.IGNORECASE):
            warnings.append(f"Image {i + 1} missing display:block style")

    if errors:
        logger.debug("Email validation failed", error_count=len(errors), warning_count=len(warnings))

    return EmailValidation(
        isValid=len(errors) == 0,
        warnings=warnings,
        errors=errors,
        sizeBytes=total_size,
    )
