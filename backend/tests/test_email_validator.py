"""Tests for email HTML validation."""
from mailblocks.services.email_validator import validate_email

CLEAN_EMAIL = (
    "<html><head><style>@media screen and (max-width: 600px) { .fluid { width: 100% !important; } }</style></head>"
    '<body><table class="email-container" role="presentation"><tr><td>'
    '<img src="https://cdn.example.com/a.png" alt="A" style="display:block;">'
    "</td></tr></table></body></html>"
)


def test_clean_email_passes(sample_email):
    for html in (CLEAN_EMAIL, sample_email):
        result = validate_email(html)
        assert result.isValid
        assert result.errors == []
        assert result.warnings == []
        assert result.sizeBytes == len(html.encode("utf-8"))


def test_forbidden_layout_css_is_an_error():
    html = CLEAN_EMAIL.replace("<td>", '<td style="display: flex; float: left; position:absolute">')
    result = validate_email(html)

    assert not result.isValid
    assert any("display:flex" in e for e in result.errors)
    assert any("float" in e for e in result.errors)
    assert any("position" in e for e in result.errors)


def test_missing_table_is_an_error():
    result = validate_email("<div>@media email-container</div>")

    assert not result.isValid
    assert "No table layout detected - email will break in Outlook" in result.errors


def test_size_limit_warning():
    html = CLEAN_EMAIL + ("<!-- padding -->" * 200)
    result = validate_email(html, max_size_kb=1)

    assert result.isValid
    assert any("exceeds Gmail limit (1KB)" in w for w in result.warnings)


def test_image_and_variable_warnings():
    html = CLEAN_EMAIL.replace(
        '<img src="https://cdn.example.com/a.png" alt="A" style="display:block;">',
        '<img src="b.png"><a href="{{ctaUrl}}">Go</a><a href="{{{trackUrl}}}">Track</a>',
    )
    result = validate_email(html)

    assert result.isValid
    assert "Image 1 missing alt attribute" in result.warnings
    assert "Image 1 missing display:block style" in result.warnings
    assert "URL variables should use triple braces {{{url}}} in SuprSend" in result.warnings


def test_icon_cell_and_emoji_warnings():
    html = CLEAN_EMAIL.replace("<td>", '<td width="48">\U0001F680 ')
    result = validate_email(html)

    assert 'Icon cell missing valign="top" - may cause misalignment' in result.warnings
    assert any(w.startswith("Emojis detected") for w in result.warnings)
