"""
AI block editing - asks an LLM to rewrite the HTML of a single block.

The editor only produces replacement HTML for one block; committing it to
the document goes through replace_block_html so the rest of the document
is never touched by the model.
"""
import re
from typing import Optional

import httpx
import structlog
from anthropic import AsyncAnthropic

from mailblocks.config import settings
from mailblocks.models.blocks import ChatContext, EmailBlock, ParsedEmail
from mailblocks.services.block_parser import get_block_by_id, reconstruct_html, replace_block_html

logger = structlog.get_logger(__name__)

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"

BLOCK_EDIT_SYSTEM_PROMPT = """You are an expert email template editor. You edit ONE block of an existing HTML email template.

## Rules
1. Output the COMPLETE updated HTML of the block (not just the changed parts)
2. Preserve all existing SuprSend variables: {{variable}} for text, {{{url}}} for URLs, {{$hosted_preference_url}} for unsubscribe
3. Do NOT output block markers (<!-- BLOCK:type --> / <!-- /BLOCK:type -->), they are added back automatically
4. Do NOT output <!DOCTYPE>, <html>, <head> or <body> tags
5. Maintain email client compatibility (tables for layout, inline styles, no flexbox/grid)
6. Keep the same structure unless specifically asked to change it

## Response Format
ALWAYS respond in this exact format:

<block_html>
[COMPLETE HTML OF THE BLOCK]
</block_html>

<explanation>
[Brief description of what you changed - 1-2 sentences max]
</explanation>"""

BLOCK_HTML_PATTERN = re.compile(r"<block_html>([\s\S]*?)</block_html>")
EXPLANATION_PATTERN = re.compile(r"<explanation>([\s\S]*?)</explanation>")
FENCE_PATTERN = re.compile(r"^```(?:html)?\s*\n?|\n?```\s*$", re.IGNORECASE)
MARKER_PATTERN = re.compile(r"<!-- /?BLOCK:\w+(?:\s+[^>]*?)? -->")


class BlockEditError(Exception):
    """Raised when the AI provider fails or returns unusable block HTML."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def build_block_edit_prompt(block: EmailBlock, instruction: str, context: Optional[ChatContext] = None) -> str:
    """Build the user prompt for a block edit."""
    lines = [f"Edit the {block.label} block ({block.type}): {instruction}"]

    if context:
        lines.append("")
        lines.append("## Template Context")
        lines.append(f"- Brand: {context.brandName}")
        lines.append(f"- Email Type: {context.emailType}")
        lines.append(f"- Tone: {context.tone}")
        lines.append(f"- Primary Color: {context.primaryColor}")
        lines.append(f"- Secondary Color: {context.secondaryColor}")
        if context.accentColor:
            lines.append(f"- Accent Color: {context.accentColor}")
        if context.industry:
            lines.append(f"- Industry: {context.industry}")

    lines.append("")
    lines.append("Current block HTML:")
    lines.append(block.html)
    return "\n".join(lines)


def clean_block_html(response_text: str) -> str:
    """Pull the block HTML out of a model response."""
    match = BLOCK_HTML_PATTERN.search(response_text)
    html = match.group(1) if match else response_text
    html = FENCE_PATTERN.sub("", html.strip())
    html = MARKER_PATTERN.sub("", html)
    return html.strip()


def extract_explanation(response_text: str) -> str:
    match = EXPLANATION_PATTERN.search(response_text)
    return match.group(1).strip() if match else "Changes applied."


class BlockAIEditor:
    """LLM-backed rewriting of a single block (Anthropic or OpenRouter)."""

    def __init__(self, provider: Optional[str] = None, api_key: Optional[str] = None, model: Optional[str] = None):
        self.provider = provider or settings.ai_provider
        if self.provider not in ("anthropic", "openrouter"):
            raise BlockEditError(f"Unknown AI provider: {self.provider}", status_code=400)

        if self.provider == "anthropic":
            self.api_key = api_key or settings.anthropic_api_key
            self.model = model or settings.anthropic_model
        else:
            self.api_key = api_key or settings.openrouter_api_key
            self.model = model or settings.openrouter_model

        self.max_tokens = settings.ai_max_tokens
        self.timeout = settings.ai_timeout_seconds
        self.last_explanation = ""

    async def edit_block(self, block: EmailBlock, instruction: str, context: Optional[ChatContext] = None) -> str:
        """Return the rewritten inner HTML of the block."""
        if not self.api_key:
            raise BlockEditError("API key is required", status_code=401)

        user_prompt = build_block_edit_prompt(block, instruction, context)
        logger.info("AI block edit", provider=self.provider, model=self.model, block_id=block.id)

        if self.provider == "anthropic":
            response_text = await self._call_anthropic(BLOCK_EDIT_SYSTEM_PROMPT, user_prompt)
        else:
            response_text = await self._call_openrouter(BLOCK_EDIT_SYSTEM_PROMPT, user_prompt)

        new_html = clean_block_html(response_text)
        if not new_html:
            raise BlockEditError("AI returned empty block HTML", status_code=502)

        self.last_explanation = extract_explanation(response_text)
        return new_html

    async def _call_anthropic(self, system_prompt: str, user_prompt: str) -> str:
        client = AsyncAnthropic(api_key=self.api_key, timeout=self.timeout)
        try:
            response = await client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except Exception as e:
            error_msg = str(e)
            logger.error("Anthropic block edit failed", error=error_msg)
            if "api_key" in error_msg.lower() or "authentication" in error_msg.lower():
                raise BlockEditError("Invalid API key", status_code=401) from e
            raise BlockEditError(f"AI edit failed: {error_msg}", status_code=502) from e

        if response.content and response.content[0].type == "text":
            return response.content[0].text
        return ""

    async def _call_openrouter(self, system_prompt: str, user_prompt: str) -> str:
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": settings.base_url,
            "X-Title": "Block Editor",
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(OPENROUTER_URL, json=payload, headers=headers)

            if not response.is_success:
                logger.error("OpenRouter block edit failed", status_code=response.status_code)
                if response.status_code == 401:
                    raise BlockEditError("OpenRouter API key is invalid or expired", status_code=401)
                elif response.status_code == 402:
                    raise BlockEditError("OpenRouter account has insufficient credits", status_code=402)
                elif response.status_code == 429:
                    raise BlockEditError("OpenRouter rate limit exceeded. Please try again later", status_code=429)
                elif response.status_code == 413:
                    raise BlockEditError("Request too large. Try editing a smaller block", status_code=413)
                else:
                    raise BlockEditError(f"OpenRouter API error ({response.status_code}): {response.text}", status_code=502)

            data = response.json()
            return data["choices"][0]["message"]["content"] or ""


async def ai_edit_block(
    parsed: ParsedEmail,
    block_id: str,
    instruction: str,
    context: Optional[ChatContext] = None,
    editor: Optional[BlockAIEditor] = None,
) -> str:
    """
    Rewrite one block with the AI editor and return the new full HTML.

    Unknown block ids return the document unchanged without calling the model.
    """
    block = get_block_by_id(parsed, block_id)
    if block is None:
        return reconstruct_html(parsed)

    editor = editor or BlockAIEditor()
    new_html = await editor.edit_block(block, instruction, context)
    return replace_block_html(parsed, block_id, new_html)
