import pytest

from mailblocks.logging_config import configure_logging
from mailblocks.services.block_parser import parse_email_blocks

configure_logging(level="WARNING", json_logs=False)


SAMPLE_EMAIL = """<!DOCTYPE html>
<html>
<head>
<title>Welcome</title>
<style>@media screen and (max-width: 600px) { .email-container { width: 100% !important; } }</style>
</head>
<body>
<table class="email-container" width="600" cellpadding="0" cellspacing="0" border="0" role="presentation">
<!-- BLOCK:header -->
<tr><td style="background-color:#111111;"><img src="https://cdn.example.com/logo.png" alt="Acme" width="120" height="40" style="display:block;"></td></tr>
<!-- /BLOCK:header -->
<!-- BLOCK:hero -->
<tr><td style="background-color:#222222; color:#ffffff;">
<h1 class="headline">Welcome aboard</h1>
<p>We are glad you are here.</p>
<a href="https://example.com/start" style="color:#ffcc00;">Get started</a>
</td></tr>
<!-- /BLOCK:hero -->
<!-- BLOCK:footer -->
<tr><td><p>{{$hosted_preference_url}}</p><p>Unsubscribe at any time</p></td></tr>
<!-- /BLOCK:footer -->
</table>
</body>
</html>"""


@pytest.fixture
def sample_email():
    return SAMPLE_EMAIL


@pytest.fixture
def parsed_sample():
    return parse_email_blocks(SAMPLE_EMAIL)
