"""Tests for the AI block editor (providers are faked, no network)."""
import httpx
import pytest

from mailblocks.config import settings
from mailblocks.models.blocks import ChatContext
from mailblocks.services import block_ai_editor
from mailblocks.services.block_ai_editor import (
    BlockAIEditor,
    BlockEditError,
    ai_edit_block,
    build_block_edit_prompt,
    clean_block_html,
    extract_explanation,
)
from mailblocks.services.block_parser import parse_email_blocks, reconstruct_html


MODEL_RESPONSE = """<block_html>
```html
<!-- BLOCK:hero -->
<tr><td><h1>Bigger, bolder hero</h1></td></tr>
<!-- /BLOCK:hero -->
```
</block_html>

<explanation>
Rewrote the headline.
</explanation>"""


class FakeEditor:
    def __init__(self, html: str):
        self.html = html
        self.calls = []

    async def edit_block(self, block, instruction, context=None):
        self.calls.append((block.id, instruction))
        return self.html


def test_clean_block_html_strips_envelope_fences_and_markers():
    assert clean_block_html(MODEL_RESPONSE) == "<tr><td><h1>Bigger, bolder hero</h1></td></tr>"


def test_clean_block_html_without_envelope():
    assert clean_block_html("```\n<p>Plain</p>\n```") == "<p>Plain</p>"


def test_extract_explanation():
    assert extract_explanation(MODEL_RESPONSE) == "Rewrote the headline."
    assert extract_explanation("<p>no explanation</p>") == "Changes applied."


def test_build_block_edit_prompt_includes_block_and_context(parsed_sample):
    hero = parsed_sample.blocks[1]
    context = ChatContext(
        brandName="Acme",
        emailType="welcome",
        tone="friendly",
        primaryColor="#222222",
        secondaryColor="#ffffff",
        industry="SaaS",
    )

    prompt = build_block_edit_prompt(hero, "make it punchier", context)

    assert prompt.startswith("Edit the Hero Section block (hero): make it punchier")
    assert "- Brand: Acme" in prompt
    assert "- Industry: SaaS" in prompt
    assert "Accent Color" not in prompt
    assert prompt.endswith(hero.html)


def test_unknown_provider_is_rejected():
    with pytest.raises(BlockEditError) as exc_info:
        BlockAIEditor(provider="mystery")
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_missing_api_key(monkeypatch, parsed_sample):
    monkeypatch.setattr(settings, "anthropic_api_key", None)
    editor = BlockAIEditor(provider="anthropic")

    with pytest.raises(BlockEditError) as exc_info:
        await editor.edit_block(parsed_sample.blocks[1], "anything")
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_edit_block_cleans_provider_response(monkeypatch, parsed_sample):
    editor = BlockAIEditor(provider="anthropic", api_key="test-key")

    async def fake_call(system_prompt, user_prompt):
        assert "Hero Section" in user_prompt
        return MODEL_RESPONSE

    monkeypatch.setattr(editor, "_call_anthropic", fake_call)

    new_html = await editor.edit_block(parsed_sample.blocks[1], "bigger headline")

    assert new_html == "<tr><td><h1>Bigger, bolder hero</h1></td></tr>"
    assert editor.last_explanation == "Rewrote the headline."


@pytest.mark.asyncio
async def test_empty_response_is_an_error(monkeypatch, parsed_sample):
    editor = BlockAIEditor(provider="anthropic", api_key="test-key")

    async def fake_call(system_prompt, user_prompt):
        return "<block_html>\n</block_html>"

    monkeypatch.setattr(editor, "_call_anthropic", fake_call)

    with pytest.raises(BlockEditError) as exc_info:
        await editor.edit_block(parsed_sample.blocks[1], "delete everything")
    assert exc_info.value.status_code == 502


def _mock_openrouter(monkeypatch, handler):
    real_client = httpx.AsyncClient

    def client_factory(*args, **kwargs):
        return real_client(*args, transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(block_ai_editor.httpx, "AsyncClient", client_factory)


@pytest.mark.asyncio
async def test_openrouter_provider(monkeypatch, parsed_sample):
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"choices": [{"message": {"content": MODEL_RESPONSE}}]})

    _mock_openrouter(monkeypatch, handler)
    editor = BlockAIEditor(provider="openrouter", api_key="or-key", model="test/model")

    new_html = await editor.edit_block(parsed_sample.blocks[1], "bigger headline")

    assert new_html == "<tr><td><h1>Bigger, bolder hero</h1></td></tr>"
    assert seen["auth"] == "Bearer or-key"
    assert seen["url"] == block_ai_editor.OPENROUTER_URL


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code,expected", [(401, 401), (402, 402), (429, 429), (500, 502)])
async def test_openrouter_errors(monkeypatch, parsed_sample, status_code, expected):
    _mock_openrouter(monkeypatch, lambda request: httpx.Response(status_code, text="nope"))
    editor = BlockAIEditor(provider="openrouter", api_key="or-key")

    with pytest.raises(BlockEditError) as exc_info:
        await editor.edit_block(parsed_sample.blocks[1], "anything")
    assert exc_info.value.status_code == expected


@pytest.mark.asyncio
async def test_ai_edit_block_replaces_only_target(parsed_sample):
    editor = FakeEditor("<tr><td><h1>AI hero</h1></td></tr>")

    new_html = await ai_edit_block(parsed_sample, "hero-1", "rewrite", editor=editor)

    reparsed = parse_email_blocks(new_html)
    assert editor.calls == [("hero-1", "rewrite")]
    assert reparsed.blocks[1].html == "<tr><td><h1>AI hero</h1></td></tr>"
    assert reparsed.blocks[0].html == parsed_sample.blocks[0].html
    assert reparsed.blocks[2].html == parsed_sample.blocks[2].html


@pytest.mark.asyncio
async def test_ai_edit_unknown_block_skips_model(parsed_sample):
    editor = FakeEditor("<p>unused</p>")

    new_html = await ai_edit_block(parsed_sample, "cta-5", "rewrite", editor=editor)

    assert editor.calls == []
    assert new_html == reconstruct_html(parsed_sample)
